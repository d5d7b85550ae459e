from __future__ import annotations

from dataclasses import asdict, fields

from rpos.domain.errors import ValidationError
from rpos.domain.models import CompanyProfile

_PREFIX = "company."


class SettingsService:
    def __init__(self, repo):
        self.repo = repo

    def get_company_profile(self) -> CompanyProfile:
        stored = self.repo.get_settings()
        defaults = CompanyProfile()
        values = {
            f.name: stored.get(_PREFIX + f.name, getattr(defaults, f.name))
            for f in fields(CompanyProfile)
        }
        return CompanyProfile(**values)

    def save_company_profile(self, profile: CompanyProfile) -> None:
        if not (profile.name or "").strip():
            raise ValidationError("Company name is required.")
        self.repo.save_settings({_PREFIX + k: (v or "").strip() for k, v in asdict(profile).items()})
