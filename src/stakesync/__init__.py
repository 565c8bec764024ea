"""stakesync - Ledger registration and stake reconciliation agent.

stakesync keeps a node's on-ledger identity in line with a locally
declared desired state:
- Worker registration per topic
- Reputer registration plus a minimum stake per topic

Every pass re-derives state from the ledger (read, verify, act, re-verify),
so it is safe to re-run after a crash or on any cadence.
"""

__version__ = "1.0.0"

from . import (
    core as core,
)
from . import (
    ledger as ledger,
)
from . import (
    reconcile as reconcile,
)
