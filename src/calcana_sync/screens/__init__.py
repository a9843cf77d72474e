"""Headless screen models: list orchestration without rendering."""

from calcana_sync.screens.analyses import AnalysesScreen
from calcana_sync.screens.properties import CityForm, PropertiesScreen, PropertyForm
from calcana_sync.screens.suppliers import SupplierForm, SuppliersScreen

__all__ = [
    "AnalysesScreen",
    "CityForm",
    "PropertiesScreen",
    "PropertyForm",
    "SupplierForm",
    "SuppliersScreen",
]
