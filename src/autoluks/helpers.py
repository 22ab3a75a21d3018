from pathlib import Path
from shutil import copy2
from subprocess import CompletedProcess, TimeoutExpired, run
from typing import Union

from zenlib.util import colorize as c_

__version__ = "1.2.0"
__author__ = "desultory"


class ConfiguratorHelpers:
    """Mixin class for the AutoLuks class."""

    def _get_key_file(self, volume: str) -> Path:
        """Returns the deterministic key file path for a volume name."""
        return self["keyfile_dir"] / self["keyfile_name"].format(name=volume)

    def _get_luks_uuid(self, volume: str) -> str:
        """Strips the LUKS prefix from a volume name, leaving the expected UUID."""
        return volume.removeprefix(self["luks_prefix"])

    def _format_command(self, command: list) -> list[str]:
        """Fills {parameter} placeholders in a configured command using the config."""
        return [str(arg).format(**self.config_dict) for arg in command]

    def _write(self, file_path: Union[Path, str], contents: Union[list[str], str, bytes]) -> None:
        """
        Writes a file, replacing existing contents.
        Lists are joined with newlines, and a trailing newline is added to text.
        Parent directories are created if they do not exist.
        """
        file_path = Path(file_path)
        if not file_path.parent.is_dir():
            self.logger.debug("Parent directory for '%s' does not exist: %s" % (file_path.name, file_path.parent))
            file_path.parent.mkdir(parents=True)

        if isinstance(contents, list):
            contents = "\n".join(contents)
        if isinstance(contents, str):
            if contents and not contents.endswith("\n"):
                contents += "\n"
            self.logger.debug("[%s] Writing contents:\n%s" % (file_path, contents))
            contents = contents.encode()
        else:
            self.logger.debug("[%s] Writing %d bytes" % (file_path, len(contents)))

        with open(file_path, "wb") as file:
            file.write(contents)
        self.logger.info("Wrote file: %s" % c_(file_path, "green", bright=True))

    def _copy(self, source: Union[Path, str], dest: Union[Path, str]) -> None:
        """Copies a file, preserving metadata. Does not create parent directories."""
        self.logger.info("Copying '%s' to '%s'" % (c_(source, "blue"), c_(dest, "green")))
        copy2(source, dest)

    def _run(
        self, args: list[str], timeout=None, fail_silent=False, fail_hard=True, interactive=False
    ) -> CompletedProcess:
        """Runs a command, returns the CompletedProcess object on success.
        If a timeout is set, the command will fail hard if it times out.
        If fail_silent is set, non-zero return codes will not log stderr/stdout.
        If fail_hard is set, non-zero return codes will raise a RuntimeError.
        If interactive is set, output is not captured, so prompts reach the terminal.
        """

        def print_err(ret) -> None:
            if args := ret.args:
                if isinstance(args, tuple):
                    args = args[0]  # When there's a timeout, args is a (args, timeout) tuple
                self.logger.error("Failed command: %s" % c_(" ".join(args), "red", bright=True))
            if stdout := ret.stdout:
                self.logger.error("Command output:\n%s" % stdout.decode())
            if stderr := ret.stderr:
                self.logger.error("Command error:\n%s" % stderr.decode())

        timeout = timeout or self["timeout"] or None
        cmd_args = [str(arg) for arg in args]
        self.logger.debug("Running command: %s" % " ".join(cmd_args))
        try:
            if interactive:
                cmd = run(cmd_args, timeout=timeout)
            else:
                cmd = run(cmd_args, capture_output=True, timeout=timeout)
        except TimeoutExpired as e:
            # Always fail hard for timeouts
            print_err(e)
            raise RuntimeError("[%ds] Command timed out: %s" % (timeout, cmd_args)) from e

        if cmd.returncode != 0:
            if not fail_silent:
                print_err(cmd)
            if fail_hard:
                raise RuntimeError("Failed to run command: %s" % " ".join(cmd_args))

        return cmd
