"""
Reference data used by step validators: countries, provinces and territories,
marital statuses, and the federal and provincial dental benefit programs.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

import structlog
from benefitflow.core.exceptions import LookupNotFoundError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class LookupEntry:
    id: str
    name_en: str
    name_fr: str
    # Owning country for provinces, owning province for provincial programs
    parent_id: Optional[str] = None

    def localized_name(self, lang: str) -> str:
        return self.name_fr if lang == "fr" else self.name_en


COUNTRIES: Tuple[LookupEntry, ...] = (
    LookupEntry("CAN", "Canada", "Canada"),
    LookupEntry("USA", "United States", "États-Unis"),
    LookupEntry("FRA", "France", "France"),
    LookupEntry("GBR", "United Kingdom", "Royaume-Uni"),
    LookupEntry("MEX", "Mexico", "Mexique"),
)

PROVINCES: Tuple[LookupEntry, ...] = (
    LookupEntry("AB", "Alberta", "Alberta", "CAN"),
    LookupEntry("BC", "British Columbia", "Colombie-Britannique", "CAN"),
    LookupEntry("MB", "Manitoba", "Manitoba", "CAN"),
    LookupEntry("NB", "New Brunswick", "Nouveau-Brunswick", "CAN"),
    LookupEntry("NL", "Newfoundland and Labrador", "Terre-Neuve-et-Labrador", "CAN"),
    LookupEntry("NS", "Nova Scotia", "Nouvelle-Écosse", "CAN"),
    LookupEntry("NT", "Northwest Territories", "Territoires du Nord-Ouest", "CAN"),
    LookupEntry("NU", "Nunavut", "Nunavut", "CAN"),
    LookupEntry("ON", "Ontario", "Ontario", "CAN"),
    LookupEntry("PE", "Prince Edward Island", "Île-du-Prince-Édouard", "CAN"),
    LookupEntry("QC", "Quebec", "Québec", "CAN"),
    LookupEntry("SK", "Saskatchewan", "Saskatchewan", "CAN"),
    LookupEntry("YT", "Yukon", "Yukon", "CAN"),
    LookupEntry("CA", "California", "Californie", "USA"),
    LookupEntry("FL", "Florida", "Floride", "USA"),
    LookupEntry("NY", "New York", "New York", "USA"),
    LookupEntry("TX", "Texas", "Texas", "USA"),
    LookupEntry("WA", "Washington", "Washington", "USA"),
)

MARITAL_STATUSES: Tuple[LookupEntry, ...] = (
    LookupEntry("single", "Single", "Célibataire"),
    LookupEntry("married", "Married", "Marié(e)"),
    LookupEntry("commonlaw", "Common-law", "Conjoint(e) de fait"),
    LookupEntry("separated", "Separated", "Séparé(e)"),
    LookupEntry("divorced", "Divorced", "Divorcé(e)"),
    LookupEntry("widowed", "Widowed", "Veuf ou veuve"),
)

FEDERAL_SOCIAL_PROGRAMS: Tuple[LookupEntry, ...] = (
    LookupEntry("fed-nihb", "Non-Insured Health Benefits Program", "Programme des services de santé non assurés"),
    LookupEntry("fed-vac", "Veterans Affairs Canada", "Anciens Combattants Canada"),
    LookupEntry("fed-ifhp", "Interim Federal Health Program", "Programme fédéral de santé intérimaire"),
)

PROVINCIAL_SOCIAL_PROGRAMS: Tuple[LookupEntry, ...] = (
    LookupEntry("ab-adbp", "Alberta Adult Health Benefit", "Prestations de santé pour adultes de l'Alberta", "AB"),
    LookupEntry("bc-hab", "BC Healthy Kids Program", "Programme Healthy Kids de la C.-B.", "BC"),
    LookupEntry("on-odsp", "Ontario Disability Support Program", "Programme ontarien de soutien aux personnes handicapées", "ON"),
    LookupEntry("on-ow", "Ontario Works", "Ontario au travail", "ON"),
    LookupEntry("qc-ramq", "RAMQ Dental Services", "Services dentaires de la RAMQ", "QC"),
    LookupEntry("ns-dfs", "Nova Scotia Dental Plan", "Régime dentaire de la Nouvelle-Écosse", "NS"),
)


def _find(entries: Tuple[LookupEntry, ...], entry_id: str, kind: str) -> LookupEntry:
    for entry in entries:
        if entry.id == entry_id:
            return entry
    logger.warning("lookup_entry_not_found", kind=kind, entry_id=entry_id)
    raise LookupNotFoundError(f"Unknown {kind}: {entry_id}", details={"kind": kind, "id": entry_id})


class LookupService:
    """In-process reference data. Lookups by unknown id raise LookupNotFoundError."""

    def list_countries(self) -> List[LookupEntry]:
        return list(COUNTRIES)

    def get_country_by_id(self, country_id: str) -> LookupEntry:
        return _find(COUNTRIES, country_id, "country")

    def list_provinces(self, country_id: Optional[str] = None) -> List[LookupEntry]:
        return [p for p in PROVINCES if country_id is None or p.parent_id == country_id]

    def get_province_by_id(self, province_id: str) -> LookupEntry:
        return _find(PROVINCES, province_id, "province")

    def list_marital_statuses(self) -> List[LookupEntry]:
        return list(MARITAL_STATUSES)

    def get_marital_status_by_id(self, marital_status_id: str) -> LookupEntry:
        return _find(MARITAL_STATUSES, marital_status_id, "marital status")

    def list_federal_social_programs(self) -> List[LookupEntry]:
        return list(FEDERAL_SOCIAL_PROGRAMS)

    def get_federal_social_program_by_id(self, program_id: str) -> LookupEntry:
        return _find(FEDERAL_SOCIAL_PROGRAMS, program_id, "federal social program")

    def list_provincial_social_programs(self, province_id: Optional[str] = None) -> List[LookupEntry]:
        return [p for p in PROVINCIAL_SOCIAL_PROGRAMS if province_id is None or p.parent_id == province_id]

    def get_provincial_social_program_by_id(self, program_id: str) -> LookupEntry:
        return _find(PROVINCIAL_SOCIAL_PROGRAMS, program_id, "provincial social program")

    def has_entry(self, kind: str, entry_id: Optional[str]) -> bool:
        """Membership check used by validators; never raises."""
        tables = {
            "country": COUNTRIES,
            "province": PROVINCES,
            "marital_status": MARITAL_STATUSES,
            "federal_social_program": FEDERAL_SOCIAL_PROGRAMS,
            "provincial_social_program": PROVINCIAL_SOCIAL_PROGRAMS,
        }
        return entry_id is not None and any(entry.id == entry_id for entry in tables[kind])


lookup_service = LookupService()
