__author__ = "desultory"
__version__ = "1.1.0"

from collections import UserDict
from importlib import import_module
from pathlib import Path
from tomllib import TOMLDecodeError, load

from zenlib.logging import loggify
from zenlib.types import NoDupFlatList
from zenlib.util import colorize, handle_plural, pretty_print

from .exceptions import UsageError
from .fs.crypttab import Crypttab


@loggify
class AutoLuksConfigDict(UserDict):
    """
    Dict for autoluks config

    Every parameter must be registered in builtin_parameters, setting anything else raises a ValueError.
    Values are converted to the registered type, lists are replaced, dicts are updated.
    If a _process_{name} method exists, it is used instead of the standard setter.

    Parameters starting with an underscore are runtime state, set by hook functions.
    """

    builtin_parameters = {
        "imports": dict,  # Hook name -> list of functions, populated from module/function names
        "masks": dict,  # Hook name -> list of function names which will not be run
        "volumes": list,  # Requested volume names, in the order they were passed
        "binaries": list,  # Binaries which must be present in PATH
        "luks_prefix": str,  # Prefix stripped from volume names to get the LUKS UUID
        "keyfile_dir": Path,
        "keyfile_name": str,  # Formatted with the volume name
        "keyfile_size": int,
        "keyfile_mode": int,
        "existing_key_file": Path,  # Used to authorize luksAddKey, prompts for a passphrase when unset
        "crypttab_path": Path,
        "crypttab_backup_format": str,  # strftime format for the backup suffix
        "crypttab_options": list,
        "dracut_conf": Path,
        "dracut_modules": list,
        "initramfs_command": list,
        "initramfs_list_command": list,
        "verify_initramfs": bool,
        "grub_config": Path,
        "bootloader_command": list,
        "rollback": bool,
        "timeout": int,
        "_devices": dict,  # Volume name -> resolved device path
        "_crypttab": Crypttab,
        "_crypttab_backup": Path,
    }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        for parameter, default_type in self.builtin_parameters.items():
            if default_type in (dict, list):
                self.data[parameter] = default_type()
            elif default_type is bool:
                self.data[parameter] = False
            else:  # Paths and objects stay None until set, Path() would be truthy
                self.data[parameter] = None
        self.load_toml(Path(__file__).parent / "base.toml")

    def load_toml(self, config_file) -> None:
        """Loads a toml file into the config, raises a ValueError if it cannot be decoded."""
        with open(config_file, "rb") as f:
            self.logger.debug("Loading config file: %s" % colorize(f.name, "blue"))
            try:
                raw_config = load(f)
            except TOMLDecodeError as e:
                raise ValueError("[%s] Error decoding config file: %s" % (config_file, e)) from e

        for parameter, value in raw_config.items():
            self.logger.debug("[%s] (%s) Processing config value: %s" % (config_file, parameter, value))
            self[parameter] = value

    def import_args(self, args: dict) -> None:
        """Imports data from an argument dict, None values are skipped."""
        for arg, value in args.items():
            if value is None:
                continue
            self.logger.info(f"[{colorize(arg, 'blue')}] Setting from arguments: {colorize(value, 'green')}")
            self[arg] = value

    def __setitem__(self, key: str, value) -> None:
        try:
            expected_type = self.builtin_parameters[key]
        except KeyError:
            raise ValueError("Unknown config parameter: %s" % key)

        if hasattr(self, f"_process_{key}"):
            self.logger.log(5, "[%s] Using processing function: %s" % (key, f"_process_{key}"))
            return getattr(self, f"_process_{key}")(value)

        if value is None:
            self.data[key] = None
        elif expected_type is dict:
            self.data[key].update(value)
        elif expected_type is list:
            self.data[key] = value.copy() if isinstance(value, list) else [value]
        elif isinstance(value, expected_type):
            self.data[key] = value
        else:
            self.data[key] = expected_type(value)
        self.logger.log(5, "Set '%s' to: %s" % (key, self.data[key]))

    @handle_plural
    def _process_volumes(self, volume: str) -> None:
        """Appends a volume name, empty and duplicate names are usage errors."""
        if not volume:
            raise UsageError("Volume name cannot be empty.")
        if volume in self["volumes"]:
            raise UsageError("Volume specified more than once: %s" % volume)
        self.logger.debug("Adding volume: %s" % colorize(volume, "cyan"))
        self["volumes"].append(volume)

    @handle_plural
    def _process_masks(self, hook: str, function_names) -> None:
        """Masks functions for a hook, so they are skipped at runtime."""
        if isinstance(function_names, str):
            function_names = [function_names]
        masks = self["masks"].setdefault(hook, [])
        for function_name in function_names:
            if function_name not in masks:
                self.logger.info("[%s] Masking function: %s" % (hook, colorize(function_name, "yellow")))
                masks.append(function_name)

    @handle_plural
    def _process_imports(self, hook: str, import_value: dict) -> None:
        """Imports the named functions of each module, appending them to the hook."""
        for module_name, function_names in import_value.items():
            self.logger.debug("[%s]<%s> Importing module functions: %s" % (module_name, hook, function_names))
            module = import_module(module_name)
            if hook not in self["imports"]:
                self["imports"][hook] = NoDupFlatList(no_warn=True, _log_bump=5, logger=self.logger)

            if isinstance(function_names, str):
                function_names = [function_names]
            try:
                self["imports"][hook] += [getattr(module, name) for name in function_names]
            except AttributeError as e:
                raise ValueError("[%s] Unable to import function: %s" % (module_name, e)) from e
            self.logger.debug("[%s] Updated import functions: %s" % (hook, function_names))

    def __str__(self) -> str:
        return pretty_print(self.data)
