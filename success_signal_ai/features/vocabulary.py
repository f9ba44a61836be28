"""Lookup tables used by feature extraction."""

TECH_SKILLS = [
    "javascript", "python", "java", "react", "node", "typescript", "sql",
    "aws", "docker", "kubernetes", "git", "ci/cd", "agile", "rest", "api",
    "html", "css", "angular", "vue", "mongodb", "postgresql", "redis",
    "machine learning", "deep learning", "tensorflow", "pytorch", "nlp",
    "data science", "analytics", "tableau", "power bi", "spark", "hadoop",
    "devops", "linux", "bash", "microservices", "graphql",
]

# Line markers that switch skill extraction between required and preferred sections
PREFERRED_MARKERS = ["preferred", "nice to have", "nice-to-have", "bonus", "a plus", "desired"]
REQUIRED_MARKERS = ["required", "requirements", "must have", "must-have", "qualifications"]

EDUCATION_LEVELS = {
    "high school": 1,
    "associate": 2,
    "bachelor": 3,
    "master": 4,
    "phd": 5,
    "doctorate": 5,
}

# Degree abbreviations found on resumes, matched as whole words
DEGREE_ABBREVIATIONS = {
    "ged": 1,
    "diploma": 1,
    "aa": 2,
    "ba": 3,
    "bs": 3,
    "bsc": 3,
    "b.s": 3,
    "b.a": 3,
    "beng": 3,
    "btech": 3,
    "ma": 4,
    "ms": 4,
    "msc": 4,
    "m.s": 4,
    "mba": 4,
    "meng": 4,
    "mtech": 4,
    "ph.d": 5,
    "dphil": 5,
}

DEFAULT_REQUIRED_EDUCATION = 3

STUDY_FIELDS = ["computer science", "engineering", "business", "mathematics", "statistics"]

RELATED_FIELDS = {
    "computer science": ["software engineering", "computer engineering", "information technology"],
    "engineering": ["computer science", "software engineering", "electrical engineering"],
    "business": ["management", "finance", "economics", "marketing"],
}

PRESTIGIOUS_INSTITUTIONS = [
    "stanford", "mit", "harvard", "berkeley", "cmu", "caltech",
    "princeton", "yale", "columbia", "cornell", "upenn", "michigan",
]

# Checked in order; first hit wins for job titles
SENIORITY_LEVELS = {
    "intern": 1,
    "entry": 2,
    "junior": 2,
    "mid": 3,
    "senior": 4,
    "lead": 5,
    "principal": 6,
    "staff": 6,
    "director": 7,
    "vp": 8,
    "vice president": 8,
    "executive": 9,
    "chief": 9,
    "c-level": 9,
}
DEFAULT_JOB_SENIORITY = 3

INDUSTRIES = [
    "tech", "finance", "healthcare", "retail", "education",
    "manufacturing", "consulting", "media", "gaming", "saas",
]

COMPANY_SIZES = {
    "startup": 0.2,
    "small": 0.3,
    "medium": 0.5,
    "large": 0.7,
    "enterprise": 0.9,
}
DEFAULT_COMPANY_SIZE = 0.5

US_STATES = ["ca", "ny", "tx", "fl", "wa", "il", "ma", "pa", "oh", "ga"]
COUNTRIES = ["usa", "canada", "uk", "india", "germany", "france", "australia"]
REMOTE_MARKERS = ["remote", "anywhere"]

FORTUNE_500 = [
    "google", "apple", "microsoft", "amazon", "facebook", "meta", "netflix",
    "tesla", "salesforce", "oracle", "ibm", "intel", "walmart", "target",
    "cvs", "jpmorgan", "bank of america",
]

BUZZWORDS = [
    "agile", "scrum", "ci/cd", "cloud", "scalable", "microservices",
    "distributed", "rest", "api", "responsive", "cross-functional",
    "collaborative", "innovative", "optimization", "automation",
]

# Market average salary by seniority band (USD)
MARKET_SALARY = {
    "entry": 70000,
    "mid": 100000,
    "senior": 140000,
    "lead": 180000,
}

STOP_WORDS = {
    "about", "above", "after", "also", "been", "being", "both", "could",
    "does", "each", "from", "have", "having", "into", "more", "most",
    "other", "ours", "over", "same", "should", "some", "such", "than",
    "that", "their", "them", "then", "there", "these", "they", "this",
    "those", "through", "very", "want", "were", "what", "when", "where",
    "which", "while", "will", "with", "within", "would", "your", "you'll",
    "we're", "able", "work", "working",
}
