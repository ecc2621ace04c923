"""卸载 — 停用、移出清单、删除同名文件或整个包目录"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
from conftest import FakeLoader, MemoryRegistry, write_file

from modpkg.core.archive import ArchiveExtractor
from modpkg.core.exceptions import NotInstalledError
from modpkg.core.fetcher import Fetcher, TransferTool
from modpkg.core.installer import Installer
from modpkg.core.loader import PythonLoader
from modpkg.core.locator import ModuleLocator, NamingConvention
from modpkg.core.policy import FixedPolicy
from modpkg.core.protocols import PromptKind
from modpkg.core.registry import RegistryEntry


class _RecordingPolicy(FixedPolicy):
    def __init__(self, **kw: object) -> None:
        super().__init__(**kw)  # type: ignore[arg-type]
        self.asked: list[tuple[PromptKind, str]] = []

    def approve(self, kind: PromptKind, context: str) -> bool:
        self.asked.append((kind, context))
        return super().approve(kind, context)


class TestUninstall:
    def test_not_installed(self, make_installer) -> None:
        with pytest.raises(NotInstalledError) as exc:
            make_installer().uninstall("ghost")
        assert exc.value.module == "ghost"

    def test_deletes_matching_siblings_only(self, tmp_path: Path) -> None:
        root = tmp_path / "root"
        wanted = [
            write_file(root / n)
            for n in ("mod-1.2.el", "mod-1.2.elc", "mod-autoload-1.2.el")
        ]
        unrelated = [write_file(root / n) for n in ("modx.el", "other-mod.el", "mod.txt")]
        policy = _RecordingPolicy()
        loader, registry = FakeLoader(), MemoryRegistry([RegistryEntry("mod")])
        loader.active["mod"] = wanted[0]
        installer = Installer(
            locator=ModuleLocator([root], NamingConvention(".el", ".elc")),
            fetcher=Fetcher([], TransferTool(), tmp_path / "dl", policy),
            extractor=ArchiveExtractor(tmp_path / "scratch"),
            loader=loader,
            registry=registry,
            policy=policy,
            install_dir=root,
        )
        report = installer.uninstall("mod")

        assert report.deactivated and report.unregistered
        assert report.removed == wanted
        assert all(not p.exists() for p in wanted)
        assert all(p.exists() for p in unrelated)
        assert loader.deactivated == ["mod"]
        assert registry.entries == []
        kind, listing = policy.asked[0]
        assert kind is PromptKind.DELETE_SIBLINGS
        assert listing.splitlines() == [str(p) for p in wanted]

    def test_siblings_declined(self, make_installer, layout) -> None:
        f = write_file(layout["site"] / "foo.py")
        policy = FixedPolicy(overrides={PromptKind.DELETE_SIBLINGS: False})
        report = make_installer(policy=policy).uninstall("foo")
        assert report.removed == []
        assert f.exists()

    def test_package_subdirectory_removed(self, make_installer, layout) -> None:
        pkg = layout["site"] / "pkg-2.0"
        write_file(pkg / "pkg.py")
        write_file(pkg / "docs" / "README")
        report = make_installer().uninstall("pkg")
        assert report.removed == [pkg]
        assert not pkg.exists()
        assert layout["site"].exists()

    def test_subdirectory_declined(self, make_installer, layout) -> None:
        pkg = layout["site"] / "pkg-2.0"
        write_file(pkg / "pkg.py")
        policy = FixedPolicy(overrides={PromptKind.DELETE_SUBDIRECTORY: False})
        assert make_installer(policy=policy).uninstall("pkg").removed == []
        assert pkg.exists()

    def test_registered_only(
        self, make_installer, memory_registry: MemoryRegistry,
    ) -> None:
        memory_registry.entries = [RegistryEntry("gone", "/nowhere/gone.py"), RegistryEntry("keep")]
        report = make_installer().uninstall("gone")
        assert report.unregistered is True
        assert report.removed == []
        assert memory_registry.entries == [RegistryEntry("keep")]

    def test_active_only(self, make_installer, fake_loader: FakeLoader) -> None:
        fake_loader.active["live"] = Path("/tmp/live.py")
        report = make_installer().uninstall("live")
        assert report.deactivated is True
        assert not fake_loader.is_active("live")

    def test_install_then_uninstall(
        self, make_installer, layout, memory_registry: MemoryRegistry,
        fake_loader: FakeLoader,
    ) -> None:
        write_file(layout["mirror"] / "tool-1.1.py")
        installer = make_installer()
        installer.install("tool")
        assert (layout["site"] / "tool-1.1.py").exists()
        report = installer.uninstall("tool")
        assert report.removed == [layout["site"] / "tool-1.1.py"]
        assert memory_registry.entries == []
        assert not fake_loader.is_active("tool")

    def test_foreign_module_is_not_installed(self, tmp_path: Path) -> None:
        import json  # noqa: F401

        policy = FixedPolicy()
        locator = ModuleLocator([tmp_path / "site"])
        installer = Installer(
            locator=locator,
            fetcher=Fetcher([], TransferTool(), tmp_path / "dl", policy),
            extractor=ArchiveExtractor(tmp_path / "scratch"),
            loader=PythonLoader(locator),
            registry=MemoryRegistry(),
            policy=policy,
            install_dir=tmp_path / "site",
        )
        with pytest.raises(NotInstalledError):
            installer.uninstall("json")
        assert "json" in sys.modules


class TestUninstallBrokenPackage:
    def test_empty_package_directory_still_removed(
        self, layout, fake_loader: FakeLoader, memory_registry: MemoryRegistry,
        make_installer,
    ) -> None:
        broken = layout["site"] / "foo-2.0"
        broken.mkdir()
        memory_registry.entries = [RegistryEntry("foo")]
        fake_loader.active["foo"] = broken / "foo.py"
        policy = _RecordingPolicy()

        report = make_installer(policy=policy).uninstall("foo")

        assert report.deactivated and report.unregistered
        assert report.removed == [broken]
        assert not broken.exists()
        assert memory_registry.entries == []
        assert policy.asked == [(PromptKind.DELETE_SUBDIRECTORY, str(broken))]

    def test_broken_directory_kept_when_declined(
        self, layout, memory_registry: MemoryRegistry, make_installer,
    ) -> None:
        broken = layout["site"] / "foo-2.0"
        write_file(broken / "README")
        memory_registry.entries = [RegistryEntry("foo")]
        policy = FixedPolicy(overrides={PromptKind.DELETE_SUBDIRECTORY: False})

        report = make_installer(policy=policy).uninstall("foo")

        assert report.unregistered
        assert report.removed == []
        assert broken.exists()

    def test_broken_directory_alone_counts_as_installed(
        self, layout, make_installer,
    ) -> None:
        broken = layout["site"] / "foo-2.0"
        broken.mkdir()
        assert make_installer().uninstall("foo").removed == [broken]
