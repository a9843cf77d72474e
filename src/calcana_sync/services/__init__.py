"""Internal service layer for backend I/O."""

from calcana_sync.services.report_service import download_report, send_report
from calcana_sync.services.resource_service import (
    create_item,
    delete_item,
    fetch_list,
    fetch_page,
    reactivate_item,
    update_item,
)

__all__ = [
    "create_item",
    "delete_item",
    "download_report",
    "fetch_list",
    "fetch_page",
    "reactivate_item",
    "send_report",
    "update_item",
]
