"""
Cluster endpoint: hand every reviewed signal to the clustering workflow.
"""

from fastapi import APIRouter, Depends

from signaldesk.api.deps import get_signal_service
from signaldesk.api.schemas import ClusterResponse
from signaldesk.lifecycle.signals import SignalService

router = APIRouter()


@router.post("", response_model=ClusterResponse)
def cluster_signals(signals: SignalService = Depends(get_signal_service)):
    outcome = signals.cluster()
    if outcome.count == 0:
        return ClusterResponse(count=0, message="No reviewed signals to cluster")
    return ClusterResponse(
        count=outcome.count,
        message=f"Clustering triggered for {outcome.count} signals",
    )
