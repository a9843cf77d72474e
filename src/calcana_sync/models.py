"""Data models and constants for the Calcana list screens."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

# Application name used for platformdirs config and log paths
CONFIG_APP_NAME = "calcana-sync"

# Record status filter values, as the backend expects them
STATUS_ACTIVE = "ativos"
STATUS_INACTIVE = "inativos"
STATUS_ALL = "todos"
STATUS_OPTIONS = (STATUS_ACTIVE, STATUS_INACTIVE, STATUS_ALL)

# Select sentinels meaning "no restriction" for dependent lookups
ALL_SUPPLIERS = "todos"
ALL_PROPERTIES = "todas"

# Fixed per-screen page sizes
SUPPLIERS_PAGE_SIZE = 11
PROPERTIES_PAGE_SIZE = 11
ANALYSES_PAGE_SIZE = 10

# Lookup list sizes used to populate selects
PROPERTY_FORM_SUPPLIER_LOOKUP_SIZE = 999
ANALYSES_SUPPLIER_LOOKUP_SIZE = 20

# Excel report layouts offered by the backend
EXPORT_LAYOUTS = ("default", "nova_america", "agroterenas")

# Roles allowed to manage catalog records
OPERATOR_ROLES = frozenset({"OPERADOR", "ROLE_OPERADOR"})

# Config limits
DEFAULT_BASE_URL = "http://localhost:8080"
DEFAULT_TIMEOUT_SECONDS = 30
MAX_TIMEOUT_SECONDS = 300
DEFAULT_SEARCH_DEBOUNCE_MS = 500
MAX_SEARCH_DEBOUNCE_MS = 5000

RequestState = Literal["idle", "loading", "loaded", "error"]
Severity = Literal["information", "warning", "error"]


@dataclass(frozen=True, slots=True)
class Supplier:
    """A supplier (fornecedor) delivering cane to the lab."""

    supplier_id: int
    name: str
    email: str = ""
    active: bool = True


@dataclass(frozen=True, slots=True)
class SupplierSummary:
    """Supplier reference embedded in other records."""

    supplier_id: int
    name: str
    email: str = ""


@dataclass(frozen=True, slots=True)
class City:
    """Auxiliary lookup entity; the only hard-deletable record."""

    city_id: int
    name: str
    state: str = ""  # two-letter UF

    @property
    def label(self) -> str:
        return f"{self.name} - {self.state}" if self.state else self.name


@dataclass(frozen=True, slots=True)
class Property:
    """A rural property owned by a supplier."""

    property_id: int
    name: str
    active: bool = True
    supplier: SupplierSummary | None = None
    city: City | None = None


@dataclass(frozen=True, slots=True)
class PropertyOption:
    """Lightweight property entry for dependent filter selects."""

    property_id: int
    name: str


@dataclass(frozen=True, slots=True)
class AnalysisProperty:
    """Property reference embedded in an analysis (carries its supplier)."""

    property_id: int
    name: str
    supplier: SupplierSummary | None = None


@dataclass(frozen=True, slots=True)
class UserSummary:
    """User who entered an analysis."""

    user_id: int
    name: str


@dataclass(frozen=True, slots=True)
class Analysis:
    """One lab analysis of a cane sample."""

    analysis_id: int
    sample_number: int
    analysis_date: str  # ISO date as sent by the backend
    zone: str = ""
    plot: str = ""  # talhão
    cut: int = 0
    pbu: float = 0.0
    brix: float = 0.0
    saccharimetric_reading: float = 0.0
    atr: float = 0.0
    purity: float = 0.0
    pol_cane: float = 0.0
    pol_juice: float = 0.0
    fiber: float = 0.0
    ar_cane: float = 0.0
    ar_juice: float = 0.0
    corrected_saccharimetric_reading: float = 0.0
    notes: str | None = None
    report_sent: bool = False
    property: AnalysisProperty | None = None
    author: UserSummary | None = None


ResourceItem = Supplier | Property | Analysis


@dataclass(frozen=True, slots=True)
class PageEnvelope:
    """One server page of a paginated collection."""

    items: list = field(default_factory=list)
    total_pages: int = 0
    page_index: int = 0
    is_first: bool = True
    is_last: bool = True
    total_count: int = 0


@dataclass(frozen=True, slots=True)
class ClientConfig:
    """Connection settings and local preferences."""

    base_url: str = DEFAULT_BASE_URL
    api_token: str = ""
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    search_debounce_ms: int = DEFAULT_SEARCH_DEBOUNCE_MS
    report_download_dir: str = ""  # Empty = use ~/calcana-reports/
    role: str = ""
    version: int = 1

    @property
    def search_debounce_seconds(self) -> float:
        return self.search_debounce_ms / 1000


def is_operator(role: str | None) -> bool:
    """Return whether the resolved role may manage catalog records."""
    return bool(role) and role.strip().upper() in OPERATOR_ROLES


__all__ = [
    "ALL_PROPERTIES",
    "ALL_SUPPLIERS",
    "ANALYSES_PAGE_SIZE",
    "ANALYSES_SUPPLIER_LOOKUP_SIZE",
    "CONFIG_APP_NAME",
    "DEFAULT_BASE_URL",
    "DEFAULT_SEARCH_DEBOUNCE_MS",
    "DEFAULT_TIMEOUT_SECONDS",
    "EXPORT_LAYOUTS",
    "MAX_SEARCH_DEBOUNCE_MS",
    "MAX_TIMEOUT_SECONDS",
    "OPERATOR_ROLES",
    "PROPERTIES_PAGE_SIZE",
    "PROPERTY_FORM_SUPPLIER_LOOKUP_SIZE",
    "STATUS_ACTIVE",
    "STATUS_ALL",
    "STATUS_INACTIVE",
    "STATUS_OPTIONS",
    "SUPPLIERS_PAGE_SIZE",
    "Analysis",
    "AnalysisProperty",
    "City",
    "ClientConfig",
    "PageEnvelope",
    "Property",
    "PropertyOption",
    "RequestState",
    "ResourceItem",
    "Severity",
    "Supplier",
    "SupplierSummary",
    "UserSummary",
    "is_operator",
]
