import hashlib
from pathlib import Path

from checksum_organiser.models import FileEntry
from checksum_organiser.resolver import duplicate_groups, resolve

ROOT = Path("/photos")


def entry(name: str) -> FileEntry:
    path = ROOT / name
    return FileEntry(path=path, size=0, extension=path.suffix)


def digest(content: bytes) -> bytes:
    return hashlib.sha256(content).digest()


def test_unique_files_each_get_their_own_group():
    hashed = [(entry("a.jpg"), digest(b"a")), (entry("b.jpg"), digest(b"b"))]
    groups = resolve(hashed)
    assert [g.keeper.name for g in groups] == ["a.jpg", "b.jpg"]
    assert all(g.discards == [] for g in groups)
    assert duplicate_groups(groups) == []


def test_first_file_in_order_is_kept():
    hashed = [
        (entry("a.jpg"), digest(b"same")),
        (entry("b.jpg"), digest(b"same")),
        (entry("c.jpg"), digest(b"other")),
        (entry("d.jpg"), digest(b"same")),
    ]
    groups = resolve(hashed)

    assert len(groups) == 2
    same = groups[0]
    assert same.keeper.name == "a.jpg"
    assert [d.name for d in same.discards] == ["b.jpg", "d.jpg"]
    assert duplicate_groups(groups) == [same]


def test_file_already_named_by_digest_is_kept():
    """A later copy that already has its canonical name wins over earlier copies."""
    d = digest(b"same")
    canonical = f"{d.hex()}.jpg"
    hashed = [(entry("0.jpg"), d), (entry(canonical), d), (entry("z.jpg"), d)]

    [group] = resolve(hashed)

    assert group.keeper.name == canonical
    assert not group.needs_rename
    assert sorted(e.name for e in group.discards) == ["0.jpg", "z.jpg"]


def test_name_of_another_digest_is_not_preferred():
    d = digest(b"same")
    hashed = [(entry("a.jpg"), d), (entry(f"{digest(b'else').hex()}.jpg"), d)]
    [group] = resolve(hashed)
    assert group.keeper.name == "a.jpg"
    assert group.canonical_path == ROOT / f"{d.hex()}.jpg"


def test_exactly_one_keeper_per_digest():
    contents = [b"x", b"y", b"x", b"z", b"y", b"x"]
    hashed = [(entry(f"{i}.bin"), digest(c)) for i, c in enumerate(contents)]
    groups = resolve(hashed)

    assert len(groups) == len(set(contents))
    keepers = [g.keeper for g in groups]
    discards = [d for g in groups for d in g.discards]
    assert len(keepers) + len(discards) == len(contents)
    assert not set(keepers) & set(discards)


def test_resolution_is_reproducible():
    hashed = [(entry(f"{i}.bin"), digest(bytes([i % 2]))) for i in range(10)]
    first = [(g.keeper, g.discards) for g in resolve(hashed)]
    second = [(g.keeper, g.discards) for g in resolve(list(hashed))]
    assert first == second
