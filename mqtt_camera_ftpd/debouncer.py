"""
Motion Event Debouncer
======================

Coalesces bursts of uploads from one device into a single active window.

Every upload publishes ``active`` immediately and (re)arms the device's
quiet-period timer; ``inactive`` is published once the device has been quiet
for QUIET_PERIOD_SECONDS.
"""

from typing import Dict, List

from mqtt_camera_ftpd.events.protocol import MotionState
from mqtt_camera_ftpd.interfaces import Scheduler, TimerHandle
from mqtt_camera_ftpd.logging_utils import get_component_logger
from mqtt_camera_ftpd.publisher import NotificationPublisher

logger = get_component_logger(__name__, "debouncer")

QUIET_PERIOD_SECONDS = 10.0


class MotionDebouncer:
    """
    Per-device quiet-period timers.

    Sole owner of the timer map. All calls happen on the scheduler's loop
    (the FTP IOLoop), so the map needs no lock.

    Args:
        publisher: NotificationPublisher for both transitions
        scheduler: Event loop providing call_later (Scheduler protocol)
        quiet_period: Seconds without uploads before a device goes inactive

    Example:
        >>> debouncer = MotionDebouncer(publisher, server.ioloop)
        >>> debouncer.on_upload("cam1", jpeg_bytes)  # t=0   -> active
        >>> debouncer.on_upload("cam1", jpeg_bytes)  # t=3   -> active
        >>> # t=13 -> inactive (once)
    """

    def __init__(
        self,
        publisher: NotificationPublisher,
        scheduler: Scheduler,
        quiet_period: float = QUIET_PERIOD_SECONDS,
    ):
        self.publisher = publisher
        self.scheduler = scheduler
        self.quiet_period = quiet_period
        self._pending: Dict[str, TimerHandle] = {}

    def on_upload(self, device_id: str, payload: bytes) -> None:
        """
        Register an upload for ``device_id``.

        Args:
            device_id: Device identity
            payload: Uploaded snapshot bytes
        """
        pending = self._pending.pop(device_id, None)
        if pending is not None:
            pending.cancel()

        self._pending[device_id] = self.scheduler.call_later(
            self.quiet_period, self._on_quiet, device_id
        )

        logger.info(
            f"Motion detected on {device_id}",
            extra={"event": "motion_active", "device_id": device_id, "payload_bytes": len(payload)},
        )
        self.publisher.publish(device_id, MotionState.ACTIVE, payload)

    def _on_quiet(self, device_id: str) -> None:
        self._pending.pop(device_id, None)

        logger.info(
            f"Motion ended on {device_id}",
            extra={"event": "motion_inactive", "device_id": device_id},
        )
        self.publisher.publish(device_id, MotionState.INACTIVE, b"")

    def is_pending(self, device_id: str) -> bool:
        """True while ``device_id`` is inside an active window."""
        return device_id in self._pending

    @property
    def pending_devices(self) -> List[str]:
        return sorted(self._pending)

    def flush(self) -> None:
        """
        Cancel every pending timer and publish its inactive transition now.

        Called on shutdown so no retained ``active`` state outlives the bridge.
        """
        for device_id in list(self._pending):
            self._pending.pop(device_id).cancel()
            logger.info(
                f"Flushing pending inactive for {device_id}",
                extra={"event": "motion_flushed", "device_id": device_id},
            )
            self.publisher.publish(device_id, MotionState.INACTIVE, b"")
