"""Constants used by the Joben app.

Locations and tech-stack tags live in one place so both the UI (selects,
checkboxes) and validation reuse the same source.
"""

from __future__ import annotations


# Romanian cities plus "Remote", in the order shown in the location select.
LOCATIONS = [
    "Remote",
    "București",
    "Cluj-Napoca",
    "Timișoara",
    "Iași",
    "Brașov",
    "Constanța",
    "Craiova",
    "Sibiu",
    "Oradea",
    "Bacău",
    "Buzău",
]

TECH_STACK_OPTIONS = [
    "React",
    "Vue",
    "Angular",
    "Node.js",
    "Python",
    "Java",
    "C#",
    ".NET",
    "PHP",
    "Ruby",
    "Go",
    "Rust",
    "TypeScript",
    "JavaScript",
    "PostgreSQL",
    "MongoDB",
    "MySQL",
    "Redis",
    "Docker",
    "Kubernetes",
    "AWS",
    "Azure",
    "GCP",
]

COVER_LETTER_MAX_LENGTH = 300
JOB_TITLE_MIN_LENGTH = 10
JOB_DESCRIPTION_MIN_LENGTH = 150
JOB_LIFETIME_DAYS = 30
JOBS_PAGE_SIZE = 20
SALARY_CURRENCY = "RON"

# Months of experience advertised in JobPosting structured data.
SENIORITY_EXPERIENCE_MONTHS = {
    "junior": 0,
    "mid": 24,
    "senior": 60,
    "lead": 84,
}
