__author__ = "desultory"
__version__ = "1.3.1"

from zenlib.logging import loggify
from zenlib.util import colorize as c_

from .config_dict import AutoLuksConfigDict
from .exceptions import UsageError
from .helpers import ConfiguratorHelpers
from .transaction import Transaction

DEFAULT_CONFIG = "/etc/autoluks/config.toml"


@loggify
class AutoLuks(ConfiguratorHelpers):
    def __init__(self, config=DEFAULT_CONFIG, *args, **kwargs):
        self.config_dict = AutoLuksConfigDict(logger=self.logger)
        self.transaction = Transaction(logger=self.logger)

        # Run in this order, a failing stage stops the run
        self.stages = ["guard", "resolve", "validate", "mutate", "provision", "boot_image", "boot_loader"]

        try:
            self.load_config(config)
        except FileNotFoundError:
            if not config:
                self.logger.info("No config file specified, using the base config.")
            elif str(config) == DEFAULT_CONFIG:
                self.logger.info("[%s] Default config file not found, using the base config." % config)
            else:
                self.logger.critical("[%s] Config file not found, using the base config." % config)
        self.config_dict.import_args(kwargs)  # Arguments are applied over the config file

    def load_config(self, config_filename) -> None:
        """Loads the config from the specified toml file over the base config."""
        if not config_filename:
            raise FileNotFoundError("Config file not specified.")
        self.logger.info("Loading config file: %s" % c_(config_filename, "blue", bold=True, bright=True))
        self.config_dict.load_toml(config_filename)
        self.logger.debug("Loaded config:\n%s" % self.config_dict)

    #  If the configurator is used as a dictionary, it will use the config_dict.
    def __setitem__(self, key, value):
        self.config_dict[key] = value

    def __getitem__(self, item):
        return self.config_dict[item]

    def __contains__(self, item):
        return item in self.config_dict

    def get(self, item, default=None):
        return self.config_dict.get(item, default)

    def __getattr__(self, item):
        """Allows access to the config dict via the AutoLuks object."""
        if item == "config_dict" or item.startswith("__"):
            raise AttributeError(item)
        try:
            return self[item]
        except KeyError as e:
            raise AttributeError(item) from e

    def run(self) -> None:
        """Runs every stage in order.
        If a stage fails after changes were made, the recorded changes are undone before the error is raised."""
        self._log_run(f"Running autoluks v{__version__}")
        if not self["volumes"]:
            raise UsageError("At least one volume must be specified.")

        try:
            for stage in self.stages:
                self._log_run(stage)
                self.run_hook(stage)
        except (Exception, KeyboardInterrupt):
            if self.transaction:
                self.rollback()
            raise

        self.logger.info("Configuration completed successfully. Please reboot to verify the changes.")

    def rollback(self) -> None:
        """Undoes all recorded changes, unless rollback is disabled."""
        backup = self["_crypttab_backup"]
        if not self["rollback"]:
            self.logger.warning("Rollback is disabled, %d change(s) were left in place." % len(self.transaction))
            if backup:
                self.logger.warning("The original crypttab was saved to: %s" % c_(backup, "yellow", bold=True))
            return

        self._log_run("Rolling back changes")
        if failed := self.transaction.rollback():
            self.logger.critical("Unable to undo: %s" % c_(", ".join(failed), "red", bold=True))
            if backup:
                self.logger.critical("The original crypttab was saved to: %s" % c_(backup, "red", bold=True))
        else:
            self.logger.info("All changes were undone.")

    def run_func(self, function) -> None:
        """Runs a hook function, logging the returned message if it returns one."""
        self.logger.debug("Running function: %s" % c_(function.__name__, "blue", bold=True))
        if function_output := function(self):
            self.logger.info("[%s] %s" % (function.__name__, function_output))

    def run_hook(self, hook: str) -> None:
        """Runs all functions for the specified hook, skipping masked functions."""
        for function in self["imports"].get(hook, []):
            if function.__name__ in self["masks"].get(hook, []):
                self.logger.warning(
                    "[%s] Skipping masked function: %s" % (hook, c_(function.__name__, "yellow", bold=True))
                )
                continue
            self.run_func(function)

    def _log_run(self, logline) -> None:
        self.logger.info(f"-- | {c_(logline, 'blue', bold=True)}")

    def __str__(self) -> str:
        return str(self.config_dict)
