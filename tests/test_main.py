from unittest import TestCase, main as unittest_main
from unittest.mock import patch

from autoluks import ValidationError
from autoluks.main import main
from zenlib.logging import loggify


@loggify
class TestMain(TestCase):
    def assertExitCode(self, argv, code=1):
        with patch("autoluks.main.stderr"), patch("sys.stdout"):
            with self.assertRaises(SystemExit) as e:
                main(argv)
        self.assertEqual(e.exception.code, code)

    def test_no_volumes(self):
        self.assertExitCode([])

    def test_help(self):
        """Help exits non-zero, like any other usage output."""
        self.assertExitCode(["-h"])

    def test_unknown_option(self):
        self.assertExitCode(["-v", "luks-aa909243", "-x"])

    def test_missing_value(self):
        self.assertExitCode(["-v"])

    def test_empty_value(self):
        self.assertExitCode(["-v", "", "-c", ""])

    def test_duplicate_volume(self):
        self.assertExitCode(["-v", "luks-aa909243", "-v", "luks-aa909243", "-c", ""])

    @patch("autoluks.main.AutoLuks")
    def test_arguments(self, autoluks):
        main(["-v", "luks-aa909243", "-v", "luks-7c4658d5", "-k", "/root/unlock.key", "-c", "/tmp/autoluks.toml"])
        kwargs = autoluks.call_args.kwargs
        self.assertEqual(kwargs["volumes"], ["luks-aa909243", "luks-7c4658d5"])
        self.assertEqual(kwargs["existing_key_file"], "/root/unlock.key")
        self.assertEqual(kwargs["config"], "/tmp/autoluks.toml")
        self.assertIsNone(kwargs["rollback"])
        autoluks.return_value.run.assert_called_once()

    @patch("autoluks.main.AutoLuks")
    def test_no_rollback(self, autoluks):
        main(["-v", "luks-aa909243", "--no-rollback"])
        self.assertIs(autoluks.call_args.kwargs["rollback"], False)

    @patch("autoluks.main.AutoLuks")
    def test_failure(self, autoluks):
        """Any failure exits with status 1."""
        autoluks.return_value.run.side_effect = ValidationError("Validation failed", failures=["bad device"])
        self.assertExitCode(["-v", "luks-aa909243"])
        autoluks.return_value.run.side_effect = RuntimeError("unexpected")
        self.assertExitCode(["-v", "luks-aa909243"])


if __name__ == "__main__":
    unittest_main()
