"""Machine and clock collaborators: power control, system info, time."""

import datetime
import gc
import logging
import os
import platform
import sys

logger = logging.getLogger(__name__)


class Clock:
    """Source of the current local date and time."""

    def now(self) -> datetime.datetime:
        return datetime.datetime.now()


def _cpu_brand():
    """Best-effort CPU model name."""
    try:
        with open("/proc/cpuinfo", "r") as f:
            for line in f:
                key, _, value = line.partition(":")
                if key.strip() == "model name":
                    return value.strip()
    except OSError:
        pass
    return platform.processor() or platform.machine() or "unknown"


def _cpu_vendor():
    try:
        with open("/proc/cpuinfo", "r") as f:
            for line in f:
                key, _, value = line.partition(":")
                if key.strip() == "vendor_id":
                    return value.strip()
    except OSError:
        pass
    return platform.machine() or "unknown"


def _total_ram():
    """Physical memory in bytes, or 0 if the platform won't say."""
    try:
        return os.sysconf("SC_PAGE_SIZE") * os.sysconf("SC_PHYS_PAGES")
    except (AttributeError, ValueError, OSError):
        return 0


def _used_ram():
    """Resident memory of this process in bytes."""
    try:
        import resource
    except ImportError:
        return 0
    usage = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # ru_maxrss is bytes on macOS and kilobytes elsewhere
    if sys.platform == "darwin":
        return usage
    return usage * 1024


class HostMachine:
    """Power control and system information for the host process.

    The shell cannot power off the host; shutdown and reboot end the
    current session and the CLI decides whether to start a new one.
    """

    def shutdown(self) -> None:
        logger.info("shutdown requested")

    def reboot(self) -> None:
        logger.info("reboot requested")

    def sysinfo(self) -> dict:
        """Return CPU brand, CPU vendor, total RAM and used RAM."""
        return {
            "cpu": _cpu_brand(),
            "vendor": _cpu_vendor(),
            "ram": _total_ram(),
            "used_ram": _used_ram(),
        }

    def collect(self) -> int:
        """Run the garbage collector and return the objects reclaimed."""
        freed = gc.collect()
        logger.debug("gc.collect() reclaimed %d objects", freed)
        return freed
