__author__ = "desultory"
__version__ = "1.0.2"

from os import W_OK, access, geteuid
from shutil import which

from autoluks import PreconditionError
from zenlib.util import colorize as c_


def check_root(self) -> str:
    """Ensures autoluks is running as root."""
    if geteuid() != 0:
        raise PreconditionError("This script must be run as root")
    return "Running as root."


def check_binaries(self) -> str:
    """Ensures all required binaries are in PATH, reports every missing binary."""
    missing = []
    for binary in self["binaries"]:
        if binary_path := which(binary):
            self.logger.debug("[%s] Found binary: %s" % (binary, binary_path))
        else:
            self.logger.error("%s could not be found. Please install %s and try again." % (c_(binary, "red"), binary))
            missing.append(binary)

    if missing:
        raise PreconditionError("Missing required binaries: %s" % ", ".join(missing), failures=missing)
    return "All required binaries found."


def check_keyfile_dir(self) -> str:
    """The key file directory must exist and be writable, it is usually /boot, which must be unencrypted."""
    keyfile_dir = self["keyfile_dir"]
    if not keyfile_dir.is_dir():
        raise PreconditionError("Key file directory does not exist: %s" % keyfile_dir)
    if not access(keyfile_dir, W_OK):
        raise PreconditionError("Key file directory is not writable: %s" % keyfile_dir)
    return "Key file directory is writable: %s" % c_(keyfile_dir, "green")
