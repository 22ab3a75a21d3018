__author__ = "desultory"
__version__ = "1.2.0"

from os import O_CREAT, O_EXCL, O_WRONLY
from os import open as os_open
from pathlib import Path
from secrets import token_bytes

from autoluks import MutationError
from autoluks.fs.crypttab import CrypttabEntry, _write_crypttab
from zenlib.util import colorize as c_


def _write_key_file(self, key_file: Path, key: bytes) -> None:
    """Writes a key to a newly created file with owner-only permissions, then applies keyfile_mode."""
    key_file.unlink(missing_ok=True)
    with open(os_open(key_file, O_WRONLY | O_CREAT | O_EXCL, 0o600), "wb") as f:
        f.write(key)
    key_file.chmod(self["keyfile_mode"])


def _restore_key_file(self, key_file: Path, old_key: bytes) -> None:
    """Removes a created key file, or puts back the previous key if one was replaced."""
    key_file.unlink(missing_ok=True)
    if old_key is not None:
        _write_key_file(self, key_file, old_key)


def _create_key_file(self, volume: str, key_file: Path) -> None:
    """Writes keyfile_size random bytes to the key file.
    The file is created with owner-only permissions so the key is never readable by others."""
    old_key = key_file.read_bytes() if key_file.exists() else None
    if old_key is not None:
        self.logger.warning(
            "[%s] Replacing existing key file, the key slot using it remains in the LUKS header: %s"
            % (volume, c_(key_file, "yellow"))
        )
    self.transaction.record(f"remove key file {key_file}", _restore_key_file, self, key_file, old_key)

    try:
        _write_key_file(self, key_file, token_bytes(self["keyfile_size"]))
    except OSError as e:
        raise MutationError("Failed to create key file for %s: %s" % (volume, e)) from e
    self.logger.info("[%s] Created key file: %s" % (volume, c_(key_file, "green")))


def _remove_luks_key(self, device: str, key_file: Path) -> None:
    self._run(["cryptsetup", "luksRemoveKey", device, key_file])


def _add_luks_key(self, volume: str, device: str, key_file: Path) -> None:
    """Adds the key file to a free key slot.
    Uses existing_key_file to unlock if set, otherwise cryptsetup prompts on the terminal."""
    args = ["cryptsetup", "luksAddKey"]
    if existing_key_file := self["existing_key_file"]:
        args += ["--key-file", existing_key_file]
    else:
        self.logger.info("[%s] Enter an existing passphrase for: %s" % (volume, c_(device, "cyan")))

    try:
        self._run([*args, device, key_file], interactive=not existing_key_file)
    except RuntimeError as e:
        raise MutationError("Failed to add key file to LUKS volume %s: %s" % (volume, e)) from e
    self.transaction.record(f"remove key slot for {key_file} from {device}", _remove_luks_key, self, device, key_file)


def _get_device_uuid(self, device: str) -> str:
    try:
        uuid = self._run(["blkid", "-s", "UUID", "-o", "value", device]).stdout.decode().strip()
    except RuntimeError as e:
        raise MutationError("Failed to get UUID of the device %s: %s" % (device, e)) from e
    if not uuid:
        raise MutationError("Failed to get UUID of the device %s" % device)
    return uuid


def provision_keys(self) -> str:
    """For each volume: creates a key file, adds it to the LUKS header, and adds a crypttab entry.
    Every completed step is recorded in the transaction, so a later failure can undo it."""
    for volume, device in self["_devices"].items():
        self.logger.info("Processing %s (%s)" % (c_(device, "blue"), volume))
        key_file = self._get_key_file(volume)
        _create_key_file(self, volume, key_file)
        _add_luks_key(self, volume, device, key_file)

        entry = CrypttabEntry(volume, f"UUID={_get_device_uuid(self, device)}", key_file, self["crypttab_options"])
        self["_crypttab"].append(entry)
        _write_crypttab(self)
        self.logger.info("Finished processing %s (%s)" % (c_(device, "green"), volume))
    return "Provisioned key files for %d volume(s)." % len(self["_devices"])
