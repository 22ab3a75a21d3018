__author__ = "desultory"
__version__ = "1.1.1"

from pathlib import Path

from autoluks import ResolutionError, ValidationError
from zenlib.util import colorize as c_


def _is_block_device(device) -> bool:
    return Path(device).is_block_device()


def _find_device(self, uuid: str) -> str:
    """Returns the device path carrying the UUID using blkid, or None if no device matches."""
    devices = (
        self._run(["blkid", "-t", f"UUID={uuid}", "-o", "device"], fail_silent=True, fail_hard=False)
        .stdout.decode()
        .split()
    )
    if len(devices) > 1:
        self.logger.warning("[%s] Multiple devices found, using the first: %s" % (uuid, ", ".join(devices)))
    return devices[0] if devices else None


def resolve_devices(self) -> str:
    """Resolves the device for each volume using the UUID after the LUKS prefix.
    All volumes are checked before raising, nothing is modified here."""
    failures = []
    for volume in self["volumes"]:
        self.logger.info("Identifying device for: %s" % c_(volume, "cyan"))
        if device := _find_device(self, self._get_luks_uuid(volume)):
            self.logger.info("[%s] Found device: %s" % (volume, c_(device, "green")))
            self["_devices"] = {volume: device}
        else:
            self.logger.error("Device for LUKS volume %s not found." % c_(volume, "red"))
            failures.append(volume)

    if failures:
        raise ResolutionError("Device for LUKS volume(s) not found: %s" % ", ".join(failures), failures=failures)
    return "Resolved devices for %d volume(s)." % len(self["_devices"])


def _validate_device(self, volume: str, device: str) -> str:
    """Checks one device, returns a description of the first problem found, or None if it is valid."""
    if not _is_block_device(device):
        return "Device %s does not exist." % device

    if self._run(["cryptsetup", "isLuks", device], fail_silent=True, fail_hard=False).returncode != 0:
        return "Device %s is not a valid LUKS volume." % device

    try:
        luks_uuid = self._run(["cryptsetup", "luksUUID", device]).stdout.decode().strip()
    except RuntimeError as e:
        return "Unable to read the LUKS UUID of device %s: %s" % (device, e)

    if luks_uuid != self._get_luks_uuid(volume):
        return "LUKS volume name %s does not match the UUID %s for device %s." % (volume, luks_uuid, device)


def validate_devices(self) -> str:
    """Validates every resolved device against the requested volume name.
    Collects the failures for all volumes, then raises a ValidationError listing them."""
    failures = []
    for volume, device in self["_devices"].items():
        self.logger.info("Validating %s (%s)" % (c_(device, "blue"), volume))
        if error := _validate_device(self, volume, device):
            self.logger.error(error)
            failures.append(error)

    if failures:
        raise ValidationError("Validation failed for %d volume(s)" % len(failures), failures=failures)
    return "All devices validated."
