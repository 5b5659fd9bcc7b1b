import zipfile
from pathlib import Path

import pytest

from modhost.core.modules.exceptions import ExtractionError, FilesystemError
from modhost.core.modules.installer import STAGING_PREFIX, Installer, PackageExtractor

from conftest import CONTROLLERS, VIEWS, blog_manifest, build_module_zip


def test_extract_expands_files_and_empty_directories(tmp_path: Path) -> None:
    archive = build_module_zip(
        tmp_path / "m.zip", blog_manifest(), files={"routes/web.php": "<?php"}
    )
    target = tmp_path / "ws"
    target.mkdir()

    PackageExtractor().extract(archive, target)

    assert (target / "module.json").is_file()
    assert (target / CONTROLLERS).is_dir()
    assert (target / VIEWS).is_dir()
    assert (target / "routes" / "web.php").read_text(encoding="utf-8") == "<?php"


def test_extract_rejects_corrupt_archive(tmp_path: Path) -> None:
    archive = tmp_path / "broken.zip"
    archive.write_bytes(b"PK\x03\x04 definitely not a zip")
    target = tmp_path / "ws"
    target.mkdir()

    with pytest.raises(ExtractionError, match="Failed to open ZIP file."):
        PackageExtractor().extract(archive, target)


def test_extract_rejects_path_traversal(tmp_path: Path) -> None:
    archive = tmp_path / "evil.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("../escape.txt", "x")
    target = tmp_path / "ws"
    target.mkdir()

    with pytest.raises(ExtractionError):
        PackageExtractor().extract(archive, target)
    assert not (tmp_path / "escape.txt").exists()


def test_extract_rejects_symlink_members(tmp_path: Path) -> None:
    archive = tmp_path / "link.zip"
    info = zipfile.ZipInfo("link")
    info.external_attr = (0o120777 << 16)
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr(info, "/etc/passwd")
    target = tmp_path / "ws"
    target.mkdir()

    with pytest.raises(ExtractionError, match="Symlinks"):
        PackageExtractor().extract(archive, target)


def test_extract_enforces_uncompressed_ceiling(tmp_path: Path) -> None:
    archive = tmp_path / "big.zip"
    with zipfile.ZipFile(archive, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr("blob.bin", b"\0" * 4096)
    target = tmp_path / "ws"
    target.mkdir()

    with pytest.raises(ExtractionError, match="expands to"):
        PackageExtractor(max_extracted_size=1024).extract(archive, target)


def test_install_copies_tree_into_modules_dir(tmp_path: Path) -> None:
    source = tmp_path / "pkg"
    (source / CONTROLLERS).mkdir(parents=True)
    (source / VIEWS).mkdir(parents=True)
    (source / "module.json").write_text("{}", encoding="utf-8")
    modules_dir = tmp_path / "Modules"

    installed = Installer(modules_dir).install(source, "Blog")

    assert installed == (modules_dir / "Blog").resolve()
    assert (installed / CONTROLLERS).is_dir()
    assert (installed / "module.json").is_file()
    assert [p.name for p in modules_dir.iterdir()] == ["Blog"]


def test_install_refuses_existing_target_and_leaves_no_staging(tmp_path: Path) -> None:
    source = tmp_path / "pkg"
    source.mkdir()
    (source / "f.txt").write_text("new", encoding="utf-8")
    modules_dir = tmp_path / "Modules"
    (modules_dir / "Blog").mkdir(parents=True)
    (modules_dir / "Blog" / "f.txt").write_text("old", encoding="utf-8")

    with pytest.raises(FilesystemError, match="already exists"):
        Installer(modules_dir).install(source, "Blog")

    assert (modules_dir / "Blog" / "f.txt").read_text(encoding="utf-8") == "old"
    assert not [p for p in modules_dir.iterdir() if p.name.startswith(STAGING_PREFIX)]


def test_install_copy_failure_is_filesystem_error(tmp_path: Path) -> None:
    modules_dir = tmp_path / "Modules"
    with pytest.raises(FilesystemError):
        Installer(modules_dir).install(tmp_path / "does-not-exist", "Blog")
    assert not (modules_dir / "Blog").exists()


def test_remove_deletes_tree_and_ignores_missing(tmp_path: Path) -> None:
    target = tmp_path / "Modules" / "Blog"
    (target / "x").mkdir(parents=True)

    Installer.remove(target)
    assert not target.exists()

    Installer.remove(target)
