from logging import getLogger
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest import TestCase, main
from unittest.mock import patch

from autoluks import AutoLuks, UsageError
from zenlib.logging import loggify


@loggify
class TestConfig(TestCase):
    def setUp(self):
        tmpdir = TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.tmpdir = Path(tmpdir.name)

    def write_config(self, contents: str) -> Path:
        config = self.tmpdir / "config.toml"
        config.write_text(contents)
        return config

    def test_base_config(self):
        """Defaults match the standard Fedora layout."""
        autoluks = AutoLuks(config=None, logger=self.logger)
        self.assertEqual(autoluks["crypttab_path"], Path("/etc/crypttab"))
        self.assertEqual(autoluks["dracut_conf"], Path("/etc/dracut.conf.d/10-crypt.conf"))
        self.assertEqual(autoluks["keyfile_size"], 2048)
        self.assertEqual(autoluks["keyfile_mode"], 0o400)
        self.assertEqual(autoluks["crypttab_options"], ["luks", "discard"])
        self.assertIsNone(autoluks["existing_key_file"])
        self.assertTrue(autoluks.rollback)
        self.assertEqual(
            autoluks._format_command(autoluks["bootloader_command"]), ["grub2-mkconfig", "-o", "/boot/grub2/grub.cfg"]
        )

    def test_stage_functions(self):
        """Every stage has its functions imported in order."""
        autoluks = AutoLuks(config=None, logger=self.logger)
        self.assertEqual(
            [function.__name__ for function in autoluks["imports"]["boot_image"]],
            ["write_dracut_config", "rebuild_initramfs", "verify_initramfs"],
        )
        for stage in autoluks.stages:
            self.assertTrue(autoluks["imports"][stage], "No functions for stage: %s" % stage)

    def test_key_file_path(self):
        autoluks = AutoLuks(config=None, logger=self.logger)
        self.assertEqual(autoluks._get_key_file("luks-aa909243"), Path("/boot/crypto_keyfile_luks-aa909243.bin"))

    def test_luks_uuid(self):
        """Only a leading luks- prefix is stripped, other names are used as-is."""
        autoluks = AutoLuks(config=None, logger=self.logger)
        self.assertEqual(autoluks._get_luks_uuid("luks-aa909243"), "aa909243")
        self.assertEqual(autoluks._get_luks_uuid("aa909243-luks-1"), "aa909243-luks-1")

    def test_config_file(self):
        """Config file values override the base config, arguments override the config file."""
        config = self.write_config('keyfile_dir = "/efi/keys"\nkeyfile_size = 4096\ncrypttab_options = ["luks"]\n')
        autoluks = AutoLuks(config=config, logger=self.logger, keyfile_size=512)
        self.assertEqual(autoluks["keyfile_dir"], Path("/efi/keys"))
        self.assertEqual(autoluks["crypttab_options"], ["luks"])
        self.assertEqual(autoluks["keyfile_size"], 512)

    def test_missing_config_file(self):
        """A missing config file falls back to the base config."""
        autoluks = AutoLuks(config=self.tmpdir / "missing.toml", logger=self.logger)
        self.assertEqual(autoluks["keyfile_dir"], Path("/boot"))

    def test_missing_default_config_file(self):
        """A missing default config file is normal, it is not logged as critical."""
        logger = getLogger("autoluks_test.default_config")
        logger.setLevel(20)
        missing = self.tmpdir / "config.toml"
        with patch("autoluks.configurator.DEFAULT_CONFIG", str(missing)):
            with self.assertLogs(logger, level=20) as logs:
                AutoLuks(config=missing, logger=logger)
        self.assertTrue(any("Default config file not found" in line for line in logs.output))
        self.assertEqual([record for record in logs.records if record.levelno >= 50], [])

    def test_missing_config_file_critical(self):
        """A missing config file which was asked for is logged as critical."""
        logger = getLogger("autoluks_test.missing_config")
        logger.setLevel(20)
        with self.assertLogs(logger, level=50) as logs:
            AutoLuks(config=self.tmpdir / "missing.toml", logger=logger)
        self.assertEqual(len(logs.records), 1)
        self.assertIn("Config file not found", logs.output[0])

    def test_bad_config(self):
        with self.assertRaises(ValueError):
            AutoLuks(config=self.write_config("volumes = [\n"), logger=self.logger)

    def test_unknown_parameter(self):
        with self.assertRaises(ValueError):
            AutoLuks(config=self.write_config('keyfile_owner = "root"\n'), logger=self.logger)
        with self.assertRaises(ValueError):
            AutoLuks(config=None, logger=self.logger, keyfile_owner="root")

    def test_volumes(self):
        autoluks = AutoLuks(config=None, logger=self.logger, volumes=["luks-b", "luks-a"])
        self.assertEqual(autoluks["volumes"], ["luks-b", "luks-a"])

    def test_duplicate_volume(self):
        """Repeating a volume is a usage error, instead of configuring it twice."""
        with self.assertRaises(UsageError):
            AutoLuks(config=None, logger=self.logger, volumes=["luks-a", "luks-b", "luks-a"])

    def test_empty_volume(self):
        with self.assertRaises(UsageError):
            AutoLuks(config=None, logger=self.logger, volumes=[""])

    def test_masks(self):
        autoluks = AutoLuks(config=None, logger=self.logger, masks={"boot_loader": "regenerate_bootloader_config"})
        autoluks["masks"] = {"boot_image": ["verify_initramfs"]}
        self.assertEqual(
            autoluks["masks"], {"boot_loader": ["regenerate_bootloader_config"], "boot_image": ["verify_initramfs"]}
        )


if __name__ == "__main__":
    main()
