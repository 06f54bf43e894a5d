"""Database helpers for the campaign store."""

from .postgres import (
    CAMPAIGN_COLUMNS,
    CampaignRow,
    campaign_to_job,
    fetch_campaigns_by_date,
    fetch_campaigns_in_range,
    sql_connect,
)

__all__ = [
    "CAMPAIGN_COLUMNS",
    "CampaignRow",
    "campaign_to_job",
    "fetch_campaigns_by_date",
    "fetch_campaigns_in_range",
    "sql_connect",
]
