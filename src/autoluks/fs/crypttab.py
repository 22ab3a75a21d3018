__author__ = "desultory"
__version__ = "1.3.0"

from datetime import datetime

from zenlib.logging import loggify
from zenlib.util import colorize as c_

from autoluks.exceptions import MutationError


class CrypttabEntry:
    """A single crypttab mapping: name, device, key file, options.
    Entries parsed from a file render as the original line until changed."""

    def __init__(self, name: str, device: str, key_file="none", options=None, line=None):
        self.name = name
        self.device = device
        self.key_file = str(key_file)
        self.options = options or []
        self.line = line

    @classmethod
    def from_line(cls, line: str):
        name, device, *extra = line.split()
        key_file = extra[0] if extra else "none"
        options = extra[1].split(",") if len(extra) > 1 else []
        return cls(name, device, key_file, options, line=line)

    def __str__(self) -> str:
        if self.line is not None:
            return self.line
        fields = [self.name, self.device, self.key_file]
        if self.options:
            fields.append(",".join(self.options))
        return " ".join(fields)

    def __repr__(self) -> str:
        return "CrypttabEntry(%r, %r, %r, %r)" % (self.name, self.device, self.key_file, self.options)


@loggify
class Crypttab:
    """
    Ordered crypttab contents.

    Comments, blank lines, and lines which cannot be parsed are kept as strings,
    everything else is parsed into a CrypttabEntry.
    Entries are matched by their name field only.
    """

    def __init__(self, contents="", *args, **kwargs):
        self.lines = []
        for line in contents.splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                self.lines.append(line)
            elif len(stripped.split()) < 2:
                self.logger.warning("Keeping unparseable crypttab line: %s" % c_(line, "yellow"))
                self.lines.append(line)
            else:
                self.lines.append(CrypttabEntry.from_line(line))

    @property
    def entries(self) -> list[CrypttabEntry]:
        return [line for line in self.lines if isinstance(line, CrypttabEntry)]

    def get(self, name: str) -> list[CrypttabEntry]:
        """Returns all entries with the given name."""
        return [entry for entry in self.entries if entry.name == name]

    def remove(self, name: str) -> int:
        """Removes every entry with the given name, returns the number removed."""
        before = len(self.lines)
        self.lines = [line for line in self.lines if not (isinstance(line, CrypttabEntry) and line.name == name)]
        return before - len(self.lines)

    def append(self, entry: CrypttabEntry) -> None:
        self.logger.debug("Adding crypttab entry: %s" % entry)
        self.lines.append(entry)

    def __contains__(self, name) -> bool:
        return bool(self.get(name))

    def __str__(self) -> str:
        return "".join(f"{line}\n" for line in self.lines)


def _write_crypttab(self) -> None:
    """Writes the in-memory crypttab to crypttab_path."""
    try:
        self._write(self["crypttab_path"], str(self["_crypttab"]))
    except OSError as e:
        raise MutationError("Failed to update %s: %s" % (self["crypttab_path"], e)) from e


def _get_backup_path(self):
    """Returns crypttab.backup.<timestamp>, with a numbered suffix if that already exists."""
    crypttab_path = self["crypttab_path"]
    timestamp = datetime.now().strftime(self["crypttab_backup_format"])
    backup_path = crypttab_path.with_name(f"{crypttab_path.name}.backup.{timestamp}")
    candidate, n = backup_path, 0
    while candidate.exists():
        n += 1
        candidate = backup_path.with_name(f"{backup_path.name}.{n}")
    return candidate


def backup_crypttab(self) -> str:
    """Copies crypttab to a timestamped backup, then loads it.
    Records restoring the backup as the first mutation."""
    crypttab_path = self["crypttab_path"]
    backup_path = _get_backup_path(self)
    try:
        self._copy(crypttab_path, backup_path)
        contents = crypttab_path.read_text()
    except OSError as e:
        raise MutationError("Failed to backup %s: %s" % (crypttab_path, e)) from e

    self["_crypttab_backup"] = backup_path
    self.transaction.record(f"restore {crypttab_path} from {backup_path}", self._copy, backup_path, crypttab_path)
    self["_crypttab"] = Crypttab(contents, logger=self.logger)
    return "Backed up %s to: %s" % (crypttab_path, c_(backup_path, "green"))


def remove_crypttab_entries(self) -> None:
    """Removes existing entries for all requested volumes, matching on the name field."""
    crypttab = self["_crypttab"]
    for volume in self["volumes"]:
        if removed := crypttab.remove(volume):
            self.logger.info("[%s] Removed %d existing crypttab entries" % (c_(volume, "cyan"), removed))
        else:
            self.logger.debug("[%s] No existing crypttab entries" % volume)
    _write_crypttab(self)
