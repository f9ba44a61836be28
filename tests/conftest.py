"""Shared fixtures: sample records, stores and a small trained model."""

import asyncio
from datetime import datetime, timezone

import numpy as np
import pytest

from success_signal_ai.model import ApplicationSuccessModel, ModelStore
from success_signal_ai.schemas.feature_vector import FEATURE_COUNT
from success_signal_ai.schemas.training import TrainingOptions
from success_signal_ai.storage import InMemoryKeyValueStore, TrainingDataStore

FIXED_NOW = datetime(2024, 1, 10, 10, 0, tzinfo=timezone.utc)  # Wednesday


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def job_posting():
    return {
        "id": "job-1",
        "title": "Senior Backend Engineer",
        "company": "Google",
        "companySize": "enterprise",
        "description": (
            "We are hiring a backend engineer to build scalable microservices.\n"
            "Requirements:\n"
            "5+ years of experience with Python and SQL.\n"
            "Bachelor's degree in Computer Science.\n"
            "Nice to have:\n"
            "Docker, Kubernetes"
        ),
        "location": "Austin, TX",
        "salary": "$130k - $150k",
        "postedDate": "2024-01-09T08:00:00Z",
        "applicationCount": 40,
    }


@pytest.fixture
def resume():
    return {
        "summary": "Backend engineer focused on scalable Python microservices and SQL data models.",
        "title": "Senior Backend Engineer",
        "skills": ["Python", "SQL", "Docker", "Git", "Linux"],
        "experience": [
            {
                "title": "Senior Software Engineer",
                "company": "Acme",
                "startDate": "2019-01-01",
                "current": True,
                "industry": "tech",
                "companySize": "large",
                "responsibilities": ["Built Python microservices", "Tuned SQL queries"],
            },
            {
                "title": "Software Engineer",
                "company": "Initech",
                "startDate": "2016-01-01",
                "endDate": "2018-12-31",
                "companySize": "medium",
            },
        ],
        "education": [
            {"degree": "Master of Science", "field": "Computer Science", "school": "Stanford University", "gpa": 3.6}
        ],
        "location": "Austin, TX",
    }


def application(i: int, success: bool):
    """(job, resume, context) for synthetic record i; successful ones share the job's skills."""
    job = {
        "title": f"Backend Engineer {i}",
        "company": f"Company {i}",
        "description": (
            "Requirements:\n"
            "Python and SQL experience building services for our customers.\n"
            "Nice to have:\n"
            "Docker"
        ),
        "location": "Austin, TX",
        "postedDate": "2024-01-01",
    }
    resume = {
        "title": "Backend Engineer" if success else "Store Manager",
        "skills": ["python", "sql", "docker"] if success else ["excel", "sales"],
        "experience": [
            {"title": "Software Engineer", "company": "Acme", "startDate": "2019-01", "endDate": "2023-01"}
        ],
        "location": "Austin, TX" if success else "Berlin, Germany",
    }
    context = {"applicationDate": f"2024-02-{(i % 28) + 1:02d}T10:00:00Z"}
    return job, resume, context


async def populate(store: TrainingDataStore, count: int, status_for=None):
    """Record `count` applications and label them; returns their ids in order."""
    status_for = status_for or (lambda i: "interview" if i % 2 == 0 else "reject")
    ids = []
    for i in range(count):
        job, res, ctx = application(i, success=i % 2 == 0)
        record_id = await store.record_application(job, res, ctx)
        status = status_for(i)
        if status is not None:
            await store.update_application_outcome(record_id, {"status": status})
        ids.append(record_id)
    return ids


@pytest.fixture
def store():
    return TrainingDataStore(InMemoryKeyValueStore())


def synthetic_data(n: int = 80, seed: int = 0):
    """Random feature rows in [0, 1]; label follows the first column."""
    rng = np.random.default_rng(seed)
    x = rng.random((n, FEATURE_COUNT)).astype(np.float32)
    y = (x[:, 0] > 0.5).astype(int)
    return x, y


@pytest.fixture
def trained_model(tmp_path):
    model = ApplicationSuccessModel(store=ModelStore(tmp_path / "model"))
    x, y = synthetic_data()
    asyncio.run(model.train(x, y, TrainingOptions(epochs=5, seed=0)))
    return model
