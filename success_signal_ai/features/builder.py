"""Build the 34-feature vector from a job posting, resume and application context."""

import math
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from success_signal_ai.features import extractors
from success_signal_ai.schemas.application import ApplicationContext
from success_signal_ai.schemas.feature_vector import FEATURE_POLICIES, FEATURE_SCHEMA, FeatureDetails, FeatureVector
from success_signal_ai.schemas.job_posting import JobPosting
from success_signal_ai.schemas.resume import Resume
from success_signal_ai.utils.date_parser import ensure_utc, utc_now
from success_signal_ai.utils.logger import get_logger

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)

# Invalid input fields are dropped one at a time; give up after this many
_MAX_COERCE_PASSES = 20


def coerce_model(model_cls: Type[M], raw: Any) -> M:
    """
    Lenient conversion of a dict (or model instance) into model_cls. Never raises:
    invalid fields and list entries are dropped and validation is retried.
    """
    if isinstance(raw, model_cls):
        return raw
    if isinstance(raw, BaseModel):
        raw = raw.model_dump()
    if not isinstance(raw, dict):
        return model_cls()
    data = dict(raw)
    for _ in range(_MAX_COERCE_PASSES):
        try:
            return model_cls.model_validate(data)
        except ValidationError as e:
            if not _drop_invalid(data, e):
                break
    logger.warning("Could not coerce %s input; using empty defaults", model_cls.__name__)
    return model_cls()


def _key_token(key: Any) -> str:
    return str(key).replace("_", "").lower()


def _drop_invalid(data: Dict[str, Any], error: ValidationError) -> bool:
    """Remove the first invalid list entry or top-level field named by error. False if none found."""
    by_token = {_key_token(k): k for k in data}
    for err in error.errors():
        loc = err.get("loc") or ()
        if not loc:
            continue
        key = by_token.get(_key_token(loc[0]))
        if key is None:
            continue
        value = data[key]
        if len(loc) > 1 and isinstance(loc[1], int) and isinstance(value, list) and loc[1] < len(value):
            logger.debug("Dropping invalid %s.%s[%s]", error.title, key, loc[1])
            data[key] = value[: loc[1]] + value[loc[1] + 1:]
        else:
            logger.debug("Dropping invalid %s field %s", error.title, key)
            data.pop(key)
        return True
    return False


def sanitize(name: str, value: Any) -> float:
    """Clamp to the feature's policy range; NaN, inf and non-numbers become the policy default."""
    policy = FEATURE_POLICIES[name]
    try:
        result = float(value)
    except (TypeError, ValueError):
        return policy.default
    if math.isnan(result) or math.isinf(result):
        return policy.default
    return max(policy.lower, min(policy.upper, result))


def _run_group(name: str, func: Callable[[], extractors.GroupResult]) -> extractors.GroupResult:
    try:
        return func()
    except Exception:
        # Fields of a failed group fall back to their policy defaults in sanitize()
        logger.exception("Feature group %s failed; using defaults", name)
        return {}, {}


def extract_features(
    job_posting: Any,
    resume: Any,
    context: Any = None,
    now: Optional[datetime] = None,
) -> FeatureVector:
    """
    Compute the FeatureVector for one application. Pure and total: malformed or missing input
    degrades to documented defaults. Open-ended experience and a missing application date
    resolve against `now`, then the context's application date, then the current time.
    """
    job = coerce_model(JobPosting, job_posting)
    res = coerce_model(Resume, resume)
    ctx = coerce_model(ApplicationContext, context)

    if now is not None:
        reference = ensure_utc(now)
    else:
        reference = ctx.application_date or utc_now()
    application_date = ctx.application_date or reference

    values: Dict[str, Any] = {}
    details: Dict[str, Any] = {}
    groups = [
        ("skills", lambda: extractors.skill_features(job, res)),
        ("experience", lambda: extractors.experience_features(job, res, reference)),
        ("education", lambda: extractors.education_features(job, res)),
        ("location", lambda: extractors.location_features(job, res)),
        ("timing", lambda: extractors.timing_features(job, ctx, application_date)),
        ("text", lambda: extractors.text_features(job, res)),
        ("job", lambda: extractors.job_features(job)),
    ]
    for name, func in groups:
        group_values, group_details = _run_group(name, func)
        values.update(group_values)
        details.update(group_details)

    required_years = details.pop("required_years", None)
    clean = {name: sanitize(name, values.get(name)) for name in FEATURE_SCHEMA}
    return FeatureVector(
        required_years=required_years,
        details=FeatureDetails(**details),
        **clean,
    )
