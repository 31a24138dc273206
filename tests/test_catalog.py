import hashlib
from pathlib import Path

import pytest

from conftest import write_file
from ratify.algo import Algorithm
from ratify.catalog import (
	Catalog,
	CatalogEntry,
	default_catalog_path,
	load_catalog,
	locate_catalog,
	new_catalog,
	parse_catalog,
	resolve_catalog_file,
)
from ratify.errors import (
	AmbiguousAlgorithm,
	CatalogExists,
	CatalogNotFound,
	CatalogReadError,
	CatalogWriteError,
	MalformedCatalog,
)

SHA1_A = hashlib.sha1(b"a").hexdigest()
SHA1_B = hashlib.sha1(b"b").hexdigest()


def test_parse_catalog_keeps_order():
	lines = [f"{SHA1_B} *z/last\n", f"{SHA1_A} *a first\n"]
	entries = parse_catalog(lines, Algorithm.SHA1, Path("x.sha1"))
	assert entries == [CatalogEntry("z/last", SHA1_B), CatalogEntry("a first", SHA1_A)]


def test_parse_catalog_lowercases_digests_and_tolerates_crlf():
	[entry] = parse_catalog([f"{SHA1_A.upper()} *file\r\n"], Algorithm.SHA1, Path("x.sha1"))
	assert entry == CatalogEntry("file", SHA1_A)


def test_parse_catalog_path_may_contain_separator():
	[entry] = parse_catalog([f"{SHA1_A} *odd *name\n"], Algorithm.SHA1, Path("x.sha1"))
	assert entry.relative_path == "odd *name"


@pytest.mark.parametrize(
	"line, reason",
	[
		("garbage\n", "syntax error"),
		(f"{SHA1_A}  file\n", "syntax error"),
		(f"{SHA1_A} *\n", "syntax error"),
		("\n", "syntax error"),
		(f"{SHA1_A[:-1]} *file\n", "invalid sha1 digest"),
		(f"{'g' * 40} *file\n", "invalid sha1 digest"),
	],
)
def test_parse_catalog_rejects_malformed_lines(line, reason):
	with pytest.raises(MalformedCatalog, match=reason) as exc_info:
		parse_catalog([f"{SHA1_B} *ok\n", line], Algorithm.SHA1, Path("x.sha1"))
	assert exc_info.value.lineno == 2


def test_parse_catalog_rejects_duplicates():
	with pytest.raises(MalformedCatalog, match="appears multiple times"):
		parse_catalog([f"{SHA1_A} *same\n", f"{SHA1_B} *same\n"], Algorithm.SHA1, Path("x.sha1"))


def test_wrong_algorithm_is_caught_by_digest_length():
	sha256 = hashlib.sha256(b"a").hexdigest()
	with pytest.raises(MalformedCatalog):
		parse_catalog([f"{sha256} *file\n"], Algorithm.MD5, Path("wrong.md5"))


def test_default_catalog_path_lives_inside_root(tmp_path):
	root = tmp_path / "photos"
	assert default_catalog_path(root, Algorithm.SHA256) == root / "photos.sha256"


def test_resolve_catalog_file_relative_to_root(tmp_path):
	root = tmp_path.resolve()
	assert resolve_catalog_file(root, Path("catalogs/backup.md5")) == root / "catalogs" / "backup.md5"
	assert resolve_catalog_file(root, tmp_path / "abs.md5") == tmp_path / "abs.md5"
	assert resolve_catalog_file(root, Path("sub/../up.md5")) == root / "up.md5"


def test_resolve_catalog_file_keeps_symlink(tmp_path):
	root = tmp_path.resolve()
	target = root / "real.md5"
	target.write_text("")
	(root / "link.md5").symlink_to(target)
	assert resolve_catalog_file(root, Path("link.md5")) == root / "link.md5"


def test_locate_catalog_infers_from_default_name(tmp_path):
	root = tmp_path / "dirname"
	write_file(root / "dirname.sha512", b"")
	assert locate_catalog(root) == (root / "dirname.sha512", Algorithm.SHA512)


def test_locate_catalog_finds_legacy_catalog_beside_root(tmp_path):
	root = tmp_path / "dirname"
	root.mkdir()
	write_file(tmp_path / "dirname.md5", b"")
	assert locate_catalog(root) == (tmp_path / "dirname.md5", Algorithm.MD5)


def test_locate_catalog_without_any_catalog(tmp_path):
	with pytest.raises(CatalogNotFound):
		locate_catalog(tmp_path)


def test_locate_catalog_explicit_algorithm_wins_over_extension(tmp_path):
	path, algo = locate_catalog(tmp_path, Algorithm.SHA256, Path("wrong.md5"))
	assert algo is Algorithm.SHA256
	assert path == tmp_path.resolve() / "wrong.md5"


def test_locate_catalog_without_extension_is_ambiguous(tmp_path):
	with pytest.raises(AmbiguousAlgorithm, match="--algorithm"):
		locate_catalog(tmp_path, None, Path("my_catalog_no_ext"))


def test_load_catalog(tmp_path):
	root = tmp_path / "dirname"
	write_file(root / "dirname.sha1", f"{SHA1_A} *a\n{SHA1_B} *sub/b\n".encode())
	catalog = load_catalog(root)
	assert catalog.algorithm is Algorithm.SHA1
	assert catalog.paths() == ["a", "sub/b"]
	assert catalog.get("sub/b") == SHA1_B
	assert catalog.absolute_path("sub/b") == root / "sub" / "b"


def test_load_catalog_unreadable_is_fatal(tmp_path):
	with pytest.raises(CatalogReadError):
		load_catalog(tmp_path, Algorithm.SHA1)


def test_write_round_trips_byte_for_byte(tmp_path):
	content = f"{SHA1_B} *z\n{SHA1_A} *a\n".encode()
	path = write_file(tmp_path / "x.sha1", content)
	catalog = load_catalog(tmp_path, catalog_file=path)
	catalog.write()
	assert path.read_bytes() == content
	assert [p.name for p in tmp_path.iterdir()] == ["x.sha1"]


def test_set_entry_replaces_in_place(tmp_path):
	catalog = Catalog(tmp_path, tmp_path / "x.sha1", Algorithm.SHA1, [CatalogEntry("a", SHA1_A), CatalogEntry("b", SHA1_B)])
	catalog.set_entry("a", SHA1_B.upper())
	catalog.remove_entry("missing-is-fine")
	assert list(catalog) == [CatalogEntry("a", SHA1_B), CatalogEntry("b", SHA1_B)]


def test_write_into_missing_directory_fails(tmp_path):
	catalog = Catalog(tmp_path, tmp_path / "nope" / "x.sha1", Algorithm.SHA1)
	with pytest.raises(CatalogWriteError):
		catalog.write()
	assert not (tmp_path / "nope").exists()


def test_new_catalog_refuses_existing_file(tmp_path):
	existing = write_file(tmp_path / "x.sha1", b"keep me")
	with pytest.raises(CatalogExists, match="already exists"):
		new_catalog(tmp_path, Algorithm.SHA1, existing)
	with pytest.raises(CatalogExists):
		new_catalog(tmp_path, Algorithm.SHA1, existing, confirm_overwrite=lambda path: False)
	assert existing.read_bytes() == b"keep me"


def test_new_catalog_overwrite_or_confirmation(tmp_path):
	existing = write_file(tmp_path / "x.sha1", b"old")
	asked = []
	catalog = new_catalog(tmp_path, Algorithm.SHA1, existing, confirm_overwrite=lambda path: asked.append(path) or True)
	assert asked == [existing.resolve()]
	assert catalog.path == existing.resolve()
	assert len(new_catalog(tmp_path, Algorithm.SHA1, existing, overwrite=True)) == 0
