"""Port interfaces - Layer boundary contracts.

Ports:
    TenancyPort - Membership and organization lookups (read-only)
    UsagePort   - Usage ledger aggregation and atomic increment
"""

from src.ports.tenancy_port import TenancyPort
from src.ports.usage_port import UsagePort

__all__ = [
    "TenancyPort",
    "UsagePort",
]
