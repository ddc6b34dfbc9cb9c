"""
Service Catalog - Connected Capacity Bundle Engine
connected_capacity/engines/service_catalog.py

Service type definitions (name, category, delivery mode, default duration)
loaded from ``<RULES_DIR>/service_types.json``. Per-visit rates come from
the rate table in ``config.SERVICE_COSTS``.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import structlog

from connected_capacity.config import get_service_cost
from connected_capacity.core.exceptions import RuleNotFoundException, RuleValidationException

logger = structlog.get_logger(__name__)

RULE_TYPE = "service catalog"


@dataclass(frozen=True)
class ServiceType:
    code: str
    name: str
    category: str
    delivery_mode: str = "in_person"
    default_duration_minutes: int = 60
    requires_specialization: bool = False

    @property
    def cost_per_visit(self) -> float:
        return get_service_cost(self.code)

    @property
    def discipline(self) -> str:
        code = self.code.upper()
        category = self.category.lower()
        if code.startswith("NUR") or category == "nursing":
            return "rn"
        if code.startswith("PSW") or category == "psw":
            return "psw"
        if code == "PT" or "physio" in category:
            return "pt"
        if code == "OT" or "occupational" in category:
            return "ot"
        if code == "SLP" or "speech" in category:
            return "slp"
        if "social" in category:
            return "sw"
        return "css"


class ServiceCatalog:
    """Lookup of service types by code."""

    def __init__(self, path: Optional[Path] = None):
        if path is None:
            from connected_capacity.config import settings
            path = settings.service_types_path
        self.path = Path(path)
        self._types: Optional[Dict[str, ServiceType]] = None

    def load(self) -> Dict[str, ServiceType]:
        if self._types is not None:
            return self._types

        if not self.path.is_file():
            raise RuleNotFoundException(RULE_TYPE, str(self.path))

        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise RuleValidationException(RULE_TYPE, self.path.name, f"invalid JSON: {e.msg}") from e

        types = {}
        for code, entry in (document.get("service_types") or {}).items():
            if "name" not in entry or "category" not in entry:
                raise RuleValidationException(RULE_TYPE, code, "service type needs 'name' and 'category'")
            types[code.upper()] = ServiceType(
                code=code.upper(),
                name=entry["name"],
                category=entry["category"],
                delivery_mode=entry.get("delivery_mode", "in_person"),
                default_duration_minutes=int(entry.get("default_duration_minutes", 60)),
                requires_specialization=bool(entry.get("requires_specialization", False)),
            )

        logger.debug("service_catalog_loaded", count=len(types))
        self._types = types
        return types

    def get(self, code: str) -> Optional[ServiceType]:
        return self.load().get(code.upper())

    def codes(self) -> List[str]:
        return list(self.load().keys())
