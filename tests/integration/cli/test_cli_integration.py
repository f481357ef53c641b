"""
Integration test for CLI command invocation.

This test validates that the installed console scripts can be invoked.
"""

import subprocess
import unittest

import pytest


@pytest.mark.integration
class TestCLIIntegration(unittest.TestCase):
    """CLI integration test class."""

    def test_cli_help_invocation(self) -> None:
        """Test command line interface help flag."""
        for command in ("duskup", "ensure-toolchain"):
            result = subprocess.run([command, "--help"], capture_output=True, text=True)
            self.assertEqual(0, result.returncode, result.stderr)

    def test_ensure_toolchain_requires_version(self) -> None:
        """Test that a missing version argument is a usage error."""
        result = subprocess.run(["ensure-toolchain"], capture_output=True, text=True)
        self.assertEqual(2, result.returncode)
        self.assertIn("version", result.stderr)


if __name__ == "__main__":
    unittest.main()
