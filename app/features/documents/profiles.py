"""
Structured records produced by the extraction service.

The raw JSON that comes back from the model is loosely shaped. ``from_raw``
normalises it: incomplete entries are dropped, lists and text are capped,
enumerations are folded onto their canonical values. Anything that still does
not fit the schema raises ``pydantic.ValidationError``, which the parser turns
into ``ParseFailed``.
"""

import re
from datetime import date
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

_YEAR_MONTH = re.compile(r"^(\d{4})-(\d{2})$")
_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_PHONE = re.compile(r"^[\+]?[1-9][\d]{0,15}$")
_LINKEDIN = re.compile(r"^https?://(www\.)?linkedin\.com/in/[\w\-]+/?$")
_URL = re.compile(r"^https?://.+$")


def parse_partial_date(value: Any) -> Optional[date]:
    """``YYYY-MM`` or ``YYYY-MM-DD`` to a date; "present" and junk to None."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.lower() == "present":
        return None
    try:
        match = _YEAR_MONTH.match(text)
        if match:
            return date(int(match.group(1)), int(match.group(2)), 1)
        match = _ISO_DATE.match(text)
        if match:
            return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None
    return None


def _is_current(end_value: Any) -> bool:
    return not end_value or (isinstance(end_value, str) and end_value.strip().lower() == "present")


def _text(value: Any, limit: int) -> str:
    return value[:limit] if isinstance(value, str) else ""


def _string_list(value: Any, limit: int) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str) and item.strip()][:limit]


def _entries(value: Any) -> List[Dict[str, Any]]:
    return [item for item in value if isinstance(item, dict)] if isinstance(value, list) else []


# =============================================================================
# RESUME
# =============================================================================

class ExperienceEntry(BaseModel):
    company: str
    position: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    current: bool = False
    description: str = ""


class EducationEntry(BaseModel):
    institution: str
    degree: str
    field: str
    graduation_year: int


class CertificationEntry(BaseModel):
    name: str
    issuer: str
    issue_date: date
    expiry_date: Optional[date] = None
    credential_id: Optional[str] = None
    credential_url: Optional[str] = None


class ProjectEntry(BaseModel):
    title: str
    description: str = ""
    technologies: List[str] = Field(default_factory=list)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    current: bool = False
    github_url: Optional[str] = None
    role: Optional[str] = None


class ResumeProfile(BaseModel):
    """Candidate profile fields lifted from a resume."""

    skills: List[str] = Field(default_factory=list)
    experience: List[ExperienceEntry] = Field(default_factory=list)
    education: List[EducationEntry] = Field(default_factory=list)
    certifications: List[CertificationEntry] = Field(default_factory=list)
    projects: List[ProjectEntry] = Field(default_factory=list)
    summary: str = ""
    location: Optional[str] = None
    phone_number: Optional[str] = None
    linkedin_url: Optional[str] = None
    portfolio_url: Optional[str] = None

    @classmethod
    def from_raw(cls, data: Dict[str, Any]) -> "ResumeProfile":
        experience = []
        for exp in _entries(data.get("experience")):
            if not (exp.get("company") and exp.get("title") and exp.get("startDate")):
                continue
            experience.append({
                "company": exp["company"],
                "position": exp["title"],
                "start_date": parse_partial_date(exp.get("startDate")),
                "end_date": parse_partial_date(exp.get("endDate")),
                "current": _is_current(exp.get("endDate")),
                "description": _text(exp.get("description"), 2000),
            })

        education = []
        for edu in _entries(data.get("education")):
            if not (edu.get("institution") and edu.get("degree") and edu.get("field")):
                continue
            end = parse_partial_date(edu.get("endDate"))
            start = parse_partial_date(edu.get("startDate"))
            year = (end or start or date.today()).year
            education.append({
                "institution": edu["institution"],
                "degree": edu["degree"],
                "field": edu["field"],
                "graduation_year": year,
            })

        certifications = []
        for cert in _entries(data.get("certifications")):
            issued = parse_partial_date(cert.get("issueDate"))
            # Certifications without a usable issue date are dropped
            if not (cert.get("name") and cert.get("issuer") and issued):
                continue
            certifications.append({
                "name": cert["name"],
                "issuer": cert["issuer"],
                "issue_date": issued,
                "expiry_date": parse_partial_date(cert.get("expiryDate")),
                "credential_id": cert.get("credentialId"),
                "credential_url": cert.get("credentialUrl"),
            })

        projects = []
        for proj in _entries(data.get("projects")):
            if not proj.get("name"):
                continue
            projects.append({
                "title": proj["name"],
                "description": _text(proj.get("description"), 2000),
                "technologies": _string_list(proj.get("technologies"), 50),
                "start_date": parse_partial_date(proj.get("startDate")),
                "end_date": parse_partial_date(proj.get("endDate")),
                "current": _is_current(proj.get("endDate")),
                "github_url": proj.get("githubUrl"),
                "role": proj.get("role"),
            })

        phone = data.get("phoneNumber")
        linkedin = data.get("linkedinUrl")
        portfolio = data.get("portfolioUrl")
        location = data.get("location")

        return cls.model_validate({
            "skills": _string_list(data.get("skills"), 50),
            "experience": experience[:20],
            "education": education[:10],
            "certifications": certifications[:20],
            "projects": projects[:20],
            "summary": _text(data.get("summary"), 1000),
            "location": location[:200] if isinstance(location, str) and location else None,
            "phone_number": phone if isinstance(phone, str) and _PHONE.match(phone) else None,
            "linkedin_url": linkedin if isinstance(linkedin, str) and _LINKEDIN.match(linkedin) else None,
            "portfolio_url": portfolio if isinstance(portfolio, str) and _URL.match(portfolio) else None,
        })

    def populated_fields(self) -> List[str]:
        """Names of the fields that carry content."""
        return [name for name, value in self if value not in (None, "", [])]


# =============================================================================
# JOB DESCRIPTION
# =============================================================================

class SalaryRange(BaseModel):
    min: float = 0
    max: float = 0
    currency: str = "INR"


class JobRequirements(BaseModel):
    skills: List[str] = Field(default_factory=list)
    experience_min: Optional[float] = None
    experience_max: Optional[float] = None
    education: List[str] = Field(default_factory=list)
    certifications: List[str] = Field(default_factory=list)


class JobDescriptionProfile(BaseModel):
    """Job posting fields lifted from a job-description document."""

    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    location: Optional[str] = None
    type: Optional[Literal["full-time", "part-time", "contract", "internship"]] = None
    work_type: Optional[Literal["wfo", "wfh", "remote"]] = None
    salary_range: Optional[SalaryRange] = None
    requirements: JobRequirements = Field(default_factory=JobRequirements)
    benefits: List[str] = Field(default_factory=list)
    number_of_openings: Optional[int] = None
    application_deadline: Optional[date] = None
    duration: Optional[str] = None

    @staticmethod
    def normalize_work_type(value: Any) -> Optional[str]:
        if not isinstance(value, str) or not value:
            return None
        lowered = value.lower()
        if "remote" in lowered:
            return "remote"
        if "hybrid" in lowered or "wfh" in lowered:
            return "wfh"
        return "wfo"

    @staticmethod
    def normalize_job_type(value: Any) -> Optional[str]:
        if not isinstance(value, str) or not value:
            return None
        lowered = value.lower()
        for needle, canonical in (
            ("full", "full-time"),
            ("part", "part-time"),
            ("contract", "contract"),
            ("intern", "internship"),
        ):
            if needle in lowered:
                return canonical
        return None

    @classmethod
    def from_raw(cls, data: Dict[str, Any]) -> "JobDescriptionProfile":
        requirements = data.get("requirements") if isinstance(data.get("requirements"), dict) else {}
        salary = data.get("salaryRange") if isinstance(data.get("salaryRange"), dict) else None
        if salary is not None:
            salary = {
                "min": salary.get("min") or 0,
                "max": salary.get("max") or 0,
                "currency": salary.get("currency") or "INR",
            }

        return cls.model_validate({
            "title": data.get("title") or "",
            "description": data.get("description") or "",
            "location": data.get("location") or None,
            "type": cls.normalize_job_type(data.get("type")),
            "work_type": cls.normalize_work_type(data.get("workType")),
            "salary_range": salary,
            "requirements": {
                "skills": _string_list(requirements.get("skills"), 50),
                "experience_min": requirements.get("experienceMin"),
                "experience_max": requirements.get("experienceMax"),
                "education": _string_list(requirements.get("education"), 20),
                "certifications": _string_list(requirements.get("certifications"), 20),
            },
            "benefits": _string_list(data.get("benefits"), 30),
            "number_of_openings": data.get("numberOfOpenings"),
            "application_deadline": parse_partial_date(data.get("applicationDeadline")),
            "duration": data.get("duration") or None,
        })
