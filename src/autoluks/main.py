#!/usr/bin/env python

import logging
from argparse import ArgumentParser, RawDescriptionHelpFormatter
from sys import exit, stderr

from zenlib.logging import ColorLognameFormatter

from autoluks.configurator import DEFAULT_CONFIG, AutoLuks
from autoluks.exceptions import AutoLuksError, UsageError

DESCRIPTION = """\
Sets up automatic boot for multiple existing LUKS2-encrypted volumes without requiring a password at boot.
It performs the following steps for each volume:
  1. Identifies the device corresponding to the LUKS volume.
  2. Creates a key file with random data in /boot and restricts its permissions.
  3. Adds the key file to the existing LUKS2-encrypted volume.
  4. Adds an /etc/crypttab entry using the key file.
Then for all volumes:
  5. Updates dracut configuration to include the key files in initramfs.
  6. Rebuilds the initramfs to include the new key configuration.
  7. Updates the GRUB configuration to apply changes.
If any step fails, completed changes are undone."""

EPILOG = """\
Requirements:
  - Must be run as root.
  - The /boot partition must be unencrypted and writable.

Example:
  sudo %(prog)s -v luks-aa909243-8b84-4459-934b-0569fba01b84 -v luks-7c4658d5-14fe-4ea5-9393-219966dc7f24"""


class UsageArgumentParser(ArgumentParser):
    """Prints the full help text and exits with status 1 on any argument error."""

    def error(self, message):
        self.print_help(stderr)
        self.exit(1, f"\n{self.prog}: error: {message}\n")


def get_parser() -> ArgumentParser:
    parser = UsageArgumentParser(
        prog="autoluks",
        description=DESCRIPTION,
        epilog=EPILOG,
        formatter_class=RawDescriptionHelpFormatter,
        add_help=False,
    )
    parser.add_argument("-v", "--volume", action="append", dest="volumes", metavar="VOLUME_NAME",
                        help="LUKS volume name, e.g. luks-aa909243-8b84-4459-934b-0569fba01b84, may be repeated")
    parser.add_argument("-h", "--help", action="store_true", help="display this help message and exit")
    parser.add_argument("-c", "--config", action="store", default=DEFAULT_CONFIG,
                        help="set the config file location")
    parser.add_argument("-k", "--existing-key-file", action="store",
                        help="existing key file used to add keys, prompts for a passphrase when unset")
    parser.add_argument("--no-rollback", action="store_false", dest="rollback", default=None,
                        help="leave completed changes in place when a step fails")
    parser.add_argument("-d", "--debug", action="store_true", help="enable debug logging")
    return parser


def get_logger(debug=False) -> logging.Logger:
    logger = logging.getLogger(__package__)
    logger.setLevel(10 if debug else 20)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(ColorLognameFormatter(fmt="%(levelname)s | %(name)-42s | %(message)s"))
        logger.addHandler(handler)
    return logger


def main(argv=None):
    parser = get_parser()
    args = parser.parse_args(argv)

    if args.help:
        parser.print_help()
        exit(1)

    if not args.volumes:
        parser.error("at least one volume name must be specified with -v")

    logger = get_logger(args.debug)
    kwargs = {"volumes": args.volumes, "existing_key_file": args.existing_key_file, "rollback": args.rollback}
    logger.debug(f"Using the following kwargs: {kwargs}")

    try:
        autoluks = AutoLuks(config=args.config, logger=logger, **kwargs)
        autoluks.run()
    except UsageError as e:
        parser.error(str(e))
    except AutoLuksError as e:
        logger.error(e)
        for failure in e.failures:
            logger.error("  %s" % failure)
        exit(1)
    except Exception as e:
        logger.error(e, exc_info=True)
        exit(1)


if __name__ == "__main__":
    main()
