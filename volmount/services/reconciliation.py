import asyncio
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set

from volmount.models.schemas import OperationOutcome, VolumeRecord, VolumeStatus
from volmount.utils.logger import get_logger
from volmount.utils.sanitize import to_message

LOG = get_logger(__name__)


class ReconciliationService:
    """Service for reconciling volume mount state with the OS mount table"""

    def __init__(self, mount_service):
        self.mount_service = mount_service
        self.repository = mount_service.repository
        self._in_flight: Set[str] = set()
        self.last_pass_started: Optional[datetime] = None
        self.last_pass_finished: Optional[datetime] = None
        self.last_results: Dict[str, Dict] = {}

    async def reconcile_volume(self, volume: VolumeRecord) -> Optional[OperationOutcome]:
        """
        Health check one volume and remount it if it is in an error state.

        Returns:
            Final outcome, or None if a pass for this volume is already running
        """
        if volume.name in self._in_flight:
            LOG.debug(f"Reconciliation already in progress for {volume.name}, skipping")
            return None

        self._in_flight.add(volume.name)
        try:
            backend = self.mount_service.get_backend(volume)

            outcome = await backend.reconcile()
            if outcome.status == VolumeStatus.ERROR:
                LOG.error(f"Failed to reconcile {volume.name}: {outcome.error}")
            else:
                LOG.debug(f"Volume {volume.name} is {outcome.status.value}")

            self.mount_service.record_outcome(volume.name, outcome)
            self.last_results[volume.name] = outcome.to_dict()
            return outcome
        finally:
            self._in_flight.discard(volume.name)

    def _needs_reconcile(self, volume: VolumeRecord) -> bool:
        if not volume.auto_remount:
            return False
        # Left unmounted on purpose by an operator
        if volume.status == VolumeStatus.UNMOUNTED:
            LOG.debug(f"Volume {volume.name} was unmounted deliberately, not remounting")
            return False
        return True

    async def run_pass(self) -> Dict[str, Dict]:
        """
        Reconcile every auto-remount volume once.

        Returns:
            Mapping of volume name to outcome dict for the volumes handled
        """
        self.last_pass_started = datetime.now(timezone.utc)
        volumes: List[VolumeRecord] = [v for v in self.repository.list_volumes()
                                       if self._needs_reconcile(v)]
        LOG.info(f"Starting reconciliation pass for {len(volumes)} volume(s)")

        results = await asyncio.gather(
            *(self.reconcile_volume(v) for v in volumes), return_exceptions=True
        )

        summary = {}
        for volume, result in zip(volumes, results):
            if isinstance(result, Exception):
                LOG.error(f"Failed to reconcile volume {volume.name}: {to_message(result)}",
                          exc_info=result)
                summary[volume.name] = OperationOutcome.failed(to_message(result)).to_dict()
            elif result is not None:
                summary[volume.name] = result.to_dict()

        self.last_pass_finished = datetime.now(timezone.utc)
        LOG.info("Reconciliation complete")
        return summary

    async def run_forever(self, interval: float, stop_event: asyncio.Event):
        """Run reconciliation passes every interval seconds until stop_event is set."""
        while not stop_event.is_set():
            try:
                await self.run_pass()
            except Exception as e:
                LOG.error(f"Reconciliation pass failed: {to_message(e)}", exc_info=True)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass

    def get_reconciliation_status(self) -> dict:
        """
        Get current reconciliation status for monitoring.

        Returns:
            Dictionary with status information
        """
        status = {
            'last_pass_started': self.last_pass_started.isoformat() if self.last_pass_started else None,
            'last_pass_finished': self.last_pass_finished.isoformat() if self.last_pass_finished else None,
            'in_flight': sorted(self._in_flight),
            'volumes': [],
            'unhealthy': [],
        }

        for volume in self.repository.list_volumes():
            info = volume.to_dict()
            status['volumes'].append(info)
            if volume.auto_remount and volume.status == VolumeStatus.ERROR:
                status['unhealthy'].append({
                    'name': volume.name,
                    'error': volume.last_error,
                })

        return status
