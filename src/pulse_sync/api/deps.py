"""FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends

from pulse_sync.adapters.leases import LeaseBackend, get_lease_backend
from pulse_sync.services.engine import ReconciliationEngine, get_engine

# Reconciliation engine dependency
EngineDep = Annotated[ReconciliationEngine, Depends(get_engine)]

# Collection lease backend dependency
LeaseBackendDep = Annotated[LeaseBackend, Depends(get_lease_backend)]
