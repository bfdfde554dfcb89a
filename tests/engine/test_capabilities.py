"""Tests for engine capability detection."""

import pytest

from imfx.contracts import ExecutionError
from imfx.engine import capabilities
from imfx.engine.capabilities import (
    detect_capabilities,
    parse_version_banner,
)

pytestmark = pytest.mark.unit

IM7_BANNER = (
    "Version: ImageMagick 7.1.1-26 Q16-HDRI x86_64 21914 https://imagemagick.org\n"
    "Copyright: (C) 1999 ImageMagick Studio LLC\n"
    "Features: Cipher DPC HDRI Modules OpenMP(4.5)\n"
)
IM6_BANNER = (
    "Version: ImageMagick 6.9.12-98 Q16 x86_64 18038 https://legacy.imagemagick.org\n"
    "Features: Cipher DPC Modules OpenMP(4.5)\n"
)


class TestParseVersionBanner:

    def test_im7_banner(self):
        version, depth, hdri = parse_version_banner(IM7_BANNER)
        assert version == (7, 1, 1, 26)
        assert depth == 16
        assert hdri is True

    def test_im6_banner(self):
        assert parse_version_banner(IM6_BANNER) == ((6, 9, 12, 98), 16, False)

    def test_banner_without_patch_level(self):
        version, _, _ = parse_version_banner("Version: ImageMagick 6.4.2 Q8")
        assert version == (6, 4, 2, 0)

    def test_quantum_depth_8(self):
        _, depth, _ = parse_version_banner("Version: ImageMagick 6.8.9-9 Q8 x86_64")
        assert depth == 8

    def test_unrecognized_banner(self):
        with pytest.raises(ExecutionError):
            parse_version_banner("GraphicsMagick 1.3.42")


class TestEngineCapabilities:

    def test_at_least_pads_version(self, im6_caps):
        assert im6_caps.at_least(6, 9)
        assert im6_caps.at_least(6, 9, 12, 98)
        assert not im6_caps.at_least(6, 9, 12, 99)
        assert not im6_caps.at_least(7)

    def test_version_string(self, im7_caps):
        assert im7_caps.version_string == "7.1.1-26"
        assert im7_caps.major == 7

    def test_capabilities_are_immutable(self, im6_caps):
        with pytest.raises(Exception):
            im6_caps.version = (7, 0, 0, 0)


class FakeCompleted:
    def __init__(self, stdout="", stderr="", returncode=0):
        self.stdout = stdout
        self.stderr = stderr
        self.returncode = returncode


class TestDetectCapabilities:

    def test_prefers_magick_on_path(self, monkeypatch):
        monkeypatch.setattr(capabilities.shutil, "which",
                            lambda name: f"/usr/bin/{name}" if name in ("magick", "convert") else None)
        monkeypatch.setattr(capabilities.subprocess, "run",
                            lambda *a, **kw: FakeCompleted(stdout=IM7_BANNER))

        caps = detect_capabilities()

        assert caps.convert == ("/usr/bin/magick",)
        assert caps.identify == ("/usr/bin/magick", "identify")
        assert caps.hdri

    def test_falls_back_to_convert(self, monkeypatch):
        monkeypatch.setattr(capabilities.shutil, "which",
                            lambda name: "/usr/bin/convert" if name == "convert" else None)
        monkeypatch.setattr(capabilities.subprocess, "run",
                            lambda *a, **kw: FakeCompleted(stdout=IM6_BANNER))

        caps = detect_capabilities()

        assert caps.convert == ("/usr/bin/convert",)
        assert caps.major == 6

    def test_explicit_binary_skips_path_lookup(self, monkeypatch, temp_dir):
        convert = temp_dir / "convert"
        identify = temp_dir / "identify"
        convert.write_text("")
        identify.write_text("")
        seen = []

        def fake_run(cmd, **kw):
            seen.append(cmd)
            return FakeCompleted(stdout=IM6_BANNER)

        monkeypatch.setattr(capabilities.subprocess, "run", fake_run)

        caps = detect_capabilities(str(convert))

        assert seen == [[str(convert), "-version"]]
        assert caps.identify == (str(identify),)

    def test_missing_engine(self, monkeypatch):
        monkeypatch.setattr(capabilities.shutil, "which", lambda name: None)
        with pytest.raises(ExecutionError, match="missing ImageMagick"):
            detect_capabilities()

    def test_binary_cannot_start(self, monkeypatch):
        def fake_run(cmd, **kw):
            raise FileNotFoundError(2, "No such file or directory")

        monkeypatch.setattr(capabilities.subprocess, "run", fake_run)
        with pytest.raises(ExecutionError, match="cannot run"):
            detect_capabilities("/nope/magick")

    def test_version_probe_fails(self, monkeypatch):
        monkeypatch.setattr(capabilities.subprocess, "run",
                            lambda *a, **kw: FakeCompleted(stderr="bad", returncode=1))
        with pytest.raises(ExecutionError):
            detect_capabilities("/usr/bin/convert")

