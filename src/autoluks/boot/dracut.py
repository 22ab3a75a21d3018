__author__ = "desultory"
__version__ = "1.1.0"

from autoluks import MutationError
from zenlib.util import colorize as c_
from zenlib.util import contains


def _restore_dracut_config(self, old_config: bytes) -> None:
    if old_config is None:
        self["dracut_conf"].unlink(missing_ok=True)
    else:
        self._write(self["dracut_conf"], old_config)


def _remove_config_dir(directory) -> None:
    if directory.is_dir():
        directory.rmdir()


def _get_key_files(self) -> list:
    return [self._get_key_file(volume) for volume in self["volumes"]]


def get_dracut_config(self) -> list[str]:
    """Returns the dracut config lines, enabling dracut_modules and including all key files."""
    modules = " ".join(self["dracut_modules"])
    key_files = "".join(f"{key_file} " for key_file in _get_key_files(self))
    return [f'add_dracutmodules+=" {modules} "', f'install_items+=" {key_files}"']


def write_dracut_config(self) -> None:
    """Overwrites the dracut config, recording the previous content for rollback.
    Directories created for the config are recorded too, so rollback removes them."""
    dracut_conf = self["dracut_conf"]
    for directory in reversed([path for path in dracut_conf.parents if not path.exists()]):
        self.transaction.record(f"remove directory {directory}", _remove_config_dir, directory)
    try:
        old_config = dracut_conf.read_bytes() if dracut_conf.exists() else None
        self.transaction.record(f"restore {dracut_conf}", _restore_dracut_config, self, old_config)
        self._write(dracut_conf, get_dracut_config(self))
    except OSError as e:
        raise MutationError("Failed to create dracut configuration %s: %s" % (dracut_conf, e)) from e


def _rebuild_initramfs(self) -> None:
    self._run(self._format_command(self["initramfs_command"]))


def rebuild_initramfs(self) -> str:
    """Rebuilds the initramfs.
    Rebuilding again is recorded as a final rollback action, so it runs once all configs are restored."""
    self.transaction.record("rebuild the initramfs", _rebuild_initramfs, self, final=True)
    self.logger.info("Rebuilding initramfs: %s" % c_(" ".join(self["initramfs_command"]), "blue"))
    try:
        _rebuild_initramfs(self)
    except RuntimeError as e:
        raise MutationError("Failed to update initramfs: %s" % e) from e
    return "Rebuilt initramfs."


@contains("verify_initramfs", "Skipping initramfs key file verification.", log_level=30)
def verify_initramfs(self) -> str:
    """Checks that the name of every key file appears in the initramfs listing."""
    try:
        listing = self._run(self._format_command(self["initramfs_list_command"])).stdout.decode()
    except RuntimeError as e:
        raise MutationError("Failed to list initramfs contents: %s" % e) from e

    missing = [str(key_file) for key_file in _get_key_files(self) if key_file.name not in listing]
    for key_file in missing:
        self.logger.error("Key file %s is not included in the initramfs" % c_(key_file, "red"))
    if missing:
        raise MutationError("Key files are not included in the initramfs: %s" % ", ".join(missing), failures=missing)
    return "All key files found in the initramfs."
