"""Tests for builds/processor.py module.

Tests build command composition and execution.
Uses mocked subprocess for build execution tests.
"""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from firmware_autobuild.builds.processor import (
    BuildExecutionError,
    PlatformIOProcessor,
    compose_build_command,
    find_artifact,
    run_build,
    safe_build_name,
)
from firmware_autobuild.catalog.schema import BuildDefinition
from firmware_autobuild.types import Channel


@pytest.fixture
def definition() -> BuildDefinition:
    """Create a definition with a PlatformIO environment."""
    return BuildDefinition(platformio_env="mega2560")


@pytest.fixture
def source_dir(tmp_path):
    """Create an upstream source tree."""
    path = tmp_path / "source"
    path.mkdir()
    return path


def completed(returncode: int = 0) -> MagicMock:
    result = MagicMock()
    result.returncode = returncode
    return result


def add_firmware(source_dir, env="mega2560", name="firmware.bin", content=b"fw"):
    """Place a built firmware where PlatformIO would."""
    build_dir = source_dir / ".pio" / "build" / env
    build_dir.mkdir(parents=True, exist_ok=True)
    (build_dir / name).write_bytes(content)


class TestSafeBuildName:
    """Tests for safe_build_name."""

    def test_strips_extension_and_slashes(self):
        """Nested names should become flat file stems."""
        assert safe_build_name("creality/ender3.yaml") == "creality_ender3"

    def test_fallback(self):
        """Names without usable characters should get a fallback."""
        assert safe_build_name("???.yaml") == "build"


class TestComposeBuildCommand:
    """Tests for compose_build_command."""

    def test_command(self, definition):
        """Should run the definition's environment."""
        assert compose_build_command(definition) == [
            "platformio",
            "run",
            "-e",
            "mega2560",
        ]

    def test_custom_executable(self, definition):
        """Should split a multi-word executable."""
        command = compose_build_command(definition, "python -m platformio")
        assert command[:3] == ["python", "-m", "platformio"]

    def test_missing_env(self):
        """Should refuse a definition without environment."""
        with pytest.raises(ValueError):
            compose_build_command(BuildDefinition())


class TestRunBuild:
    """Tests for run_build."""

    def test_success(self, source_dir, tmp_path):
        """Should run in the source tree and log the command."""
        log_path = tmp_path / "logs" / "a.log"
        with patch("subprocess.run", return_value=completed(0)) as mock_run:
            exit_code = run_build(["platformio", "run"], source_dir, log_path)

        assert exit_code == 0
        assert mock_run.call_args.kwargs["cwd"] == source_dir
        assert mock_run.call_args.kwargs["env"] is None
        log = log_path.read_text()
        assert log.startswith("$ platformio run\n")
        assert "[exit 0 after" in log

    def test_failure(self, source_dir, tmp_path):
        """A non-zero exit should be returned, not raised."""
        with patch("subprocess.run", return_value=completed(2)):
            assert run_build(["platformio"], source_dir, tmp_path / "a.log") == 2

    def test_timeout(self, source_dir, tmp_path):
        """A timeout should raise build_timeout."""
        with patch(
            "subprocess.run",
            side_effect=subprocess.TimeoutExpired(cmd="platformio", timeout=5),
        ):
            with pytest.raises(BuildExecutionError) as exc_info:
                run_build(["platformio"], source_dir, tmp_path / "a.log", timeout=5)
        assert exc_info.value.code == "build_timeout"
        assert "timed out after 5s" in (tmp_path / "a.log").read_text()

    def test_missing_executable(self, source_dir, tmp_path):
        """A spawn failure should raise execution_error."""
        with patch("subprocess.run", side_effect=FileNotFoundError("platformio")):
            with pytest.raises(BuildExecutionError) as exc_info:
                run_build(["platformio"], source_dir, tmp_path / "a.log")
        assert exc_info.value.code == "execution_error"

    def test_extra_env(self, source_dir, tmp_path):
        """Extra variables should be merged into the environment."""
        with patch("subprocess.run", return_value=completed(0)) as mock_run:
            run_build(
                ["platformio"],
                source_dir,
                tmp_path / "a.log",
                extra_env={"AUTOBUILD_VERSION": "2.1.2"},
            )
        env = mock_run.call_args.kwargs["env"]
        assert env["AUTOBUILD_VERSION"] == "2.1.2"
        assert "PATH" in env


class TestFindArtifact:
    """Tests for find_artifact."""

    def test_first_match(self, source_dir):
        """Should return the first matching file by name."""
        add_firmware(source_dir, name="firmware-b.bin")
        add_firmware(source_dir, name="firmware-a.bin")
        add_firmware(source_dir, name="other.elf")
        artifact = find_artifact(source_dir, "mega2560", "firmware*.bin")
        assert artifact.name == "firmware-a.bin"

    def test_no_build_dir(self, source_dir):
        """Should return None when the environment was never built."""
        assert find_artifact(source_dir, "mega2560", "*.bin") is None


class TestPlatformIOProcessor:
    """Tests for PlatformIOProcessor.process."""

    @pytest.fixture
    def processor(self, tmp_path, source_dir):
        processor = PlatformIOProcessor(tmp_path / "assets", tmp_path / "logs")
        processor.set_source(Channel.STABLE, source_dir)
        return processor

    def test_no_env_builds_nothing(self, processor):
        """A definition without environment should produce no artifact."""
        with patch("subprocess.run") as mock_run:
            result = processor.process(
                "a.yaml", BuildDefinition(), Channel.STABLE, "2.1.2"
            )
        assert result is None
        mock_run.assert_not_called()

    def test_collects_artifact(self, processor, definition, source_dir, tmp_path):
        """A successful build should copy the firmware into assets."""
        add_firmware(source_dir, content=b"binary")
        with patch("subprocess.run", return_value=completed(0)) as mock_run:
            result = processor.process(
                "boards/ender3.yaml", definition, Channel.STABLE, "2.1.2"
            )

        assert result == tmp_path / "assets" / "stable" / "boards_ender3.bin"
        assert result.read_bytes() == b"binary"
        assert mock_run.call_args.args[0] == ["platformio", "run", "-e", "mega2560"]
        env = mock_run.call_args.kwargs["env"]
        assert env["AUTOBUILD_CHANNEL"] == "stable"
        assert env["AUTOBUILD_BUILD_NAME"] == "boards/ender3.yaml"
        assert (tmp_path / "logs" / "stable" / "boards_ender3.log").exists()

    def test_no_matching_file(self, processor, definition):
        """A build without matching output should produce no artifact."""
        with patch("subprocess.run", return_value=completed(0)):
            assert (
                processor.process("a.yaml", definition, Channel.STABLE, "2.1.2")
                is None
            )

    def test_build_failure(self, processor, definition):
        """A failed build should raise build_failed."""
        with patch("subprocess.run", return_value=completed(1)):
            with pytest.raises(BuildExecutionError) as exc_info:
                processor.process("a.yaml", definition, Channel.STABLE, "2.1.2")
        assert exc_info.value.code == "build_failed"
        assert exc_info.value.exit_code == 1

    def test_missing_source(self, processor, definition):
        """A channel without registered source should raise missing_source."""
        with pytest.raises(BuildExecutionError) as exc_info:
            processor.process("a.yaml", definition, Channel.NIGHTLY, "x")
        assert exc_info.value.code == "missing_source"
