__author__ = "desultory"
__version__ = "1.0.0"

from autoluks import MutationError
from zenlib.util import colorize as c_


def regenerate_bootloader_config(self) -> str:
    """Regenerates the GRUB config, the final step, nothing is recorded for rollback."""
    command = self._format_command(self["bootloader_command"])
    self.logger.info("Updating GRUB configuration: %s" % c_(" ".join(command), "blue"))
    try:
        self._run(command)
    except RuntimeError as e:
        raise MutationError("Failed to update GRUB configuration: %s" % e) from e
    return "Updated GRUB configuration: %s" % c_(self["grub_config"], "green")
