"""
Vendor resolution - maps raw vendor names/codes to canonical vendors.

Resolution is exact after normalization (trim, collapse whitespace,
upper-case) against vendor name, vendor code and the alias table.
Fuzzy matching is only used to *suggest* candidates for the
unknown-vendor decision set, never to resolve silently.
"""
from typing import Dict, List, Optional

from rapidfuzz import fuzz
from sqlalchemy.orm import Session

from merchops.core.settings import settings
from merchops.models.vendor import Vendor, VendorAlias


def normalize_vendor_name(name: Optional[str]) -> str:
    if not name:
        return ""
    return " ".join(name.split()).upper()


class VendorResolver:
    """
    In-memory index of canonical vendors for one import or matching pass.

    Build once per pass; call ``register`` / ``register_alias`` when the
    pass creates vendors or aliases so later rows resolve too.
    """

    def __init__(self, db: Session):
        self.db = db
        self._vendors: Dict[int, Vendor] = {}
        self._by_key: Dict[str, int] = {}

        for vendor in db.query(Vendor).all():
            self.register(vendor)
        for alias in db.query(VendorAlias).all():
            self._by_key.setdefault(normalize_vendor_name(alias.alias), alias.vendor_id)

    def register(self, vendor: Vendor) -> None:
        self._vendors[vendor.id] = vendor
        self._by_key[normalize_vendor_name(vendor.name)] = vendor.id
        if vendor.vendor_code:
            self._by_key.setdefault(normalize_vendor_name(vendor.vendor_code), vendor.id)

    def register_alias(self, alias: str, vendor: Vendor) -> None:
        self._vendors[vendor.id] = vendor
        self._by_key[normalize_vendor_name(alias)] = vendor.id

    def resolve(self, name_or_code: Optional[str]) -> Optional[Vendor]:
        vendor_id = self._by_key.get(normalize_vendor_name(name_or_code))
        return self._vendors.get(vendor_id) if vendor_id is not None else None

    def resolve_id(self, name_or_code: Optional[str]) -> Optional[int]:
        return self._by_key.get(normalize_vendor_name(name_or_code))

    def suggest(
        self,
        name: str,
        limit: Optional[int] = None,
        min_score: Optional[float] = None,
    ) -> List[dict]:
        """Closest canonical vendors by token-set similarity, best first."""
        limit = settings.VENDOR_SUGGESTION_LIMIT if limit is None else limit
        min_score = settings.VENDOR_SUGGESTION_MIN_SCORE if min_score is None else min_score
        target = normalize_vendor_name(name)

        scored = []
        for vendor in self._vendors.values():
            score = fuzz.token_set_ratio(target, normalize_vendor_name(vendor.name))
            if score >= min_score:
                scored.append((score, vendor))

        scored.sort(key=lambda item: (-item[0], item[1].name))
        return [
            {
                "vendor_id": vendor.id,
                "vendor_name": vendor.name,
                "vendor_code": vendor.vendor_code,
                "score": round(score, 1),
            }
            for score, vendor in scored[:limit]
        ]
