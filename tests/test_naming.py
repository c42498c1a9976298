import pytest
from pathlib import Path

from apicompat.naming import name_for, strip_ref


def test_name_for_basic():
    assert name_for(Path("build/libs/core.jar"), "main") == Path("build/libs/core-main.jar")


def test_name_for_keeps_directory_for_slashed_refs():
    renamed = name_for(Path("libs/core.jar"), "release/1.x")
    assert renamed == Path("libs/core-release%2F1.x.jar")
    assert renamed.parent == Path("libs")


def test_name_for_injective_over_refs():
    p = Path("libs/core.jar")
    refs = ["main", "develop", "1.x", "main2", "mai"]
    assert len({name_for(p, r) for r in refs}) == len(refs)


def test_name_for_distinct_paths_do_not_collide():
    names = {name_for(Path(p), "main") for p in ["a.jar", "b.jar", "x/a.jar"]}
    assert len(names) == 3


@pytest.mark.parametrize("path", ["core.jar", "libs/core-1.0.jar", "a.b.c.jar"])
@pytest.mark.parametrize("ref", ["main", "feature/x", "v2"])
def test_strip_ref_round_trip(path, ref):
    p = Path(path)
    assert strip_ref(name_for(p, ref), ref) == p


def test_name_for_rejects_non_jar():
    with pytest.raises(ValueError):
        name_for(Path("core.zip"), "main")


def test_strip_ref_wrong_ref():
    with pytest.raises(ValueError):
        strip_ref(Path("core-main.jar"), "develop")


@pytest.mark.parametrize(
    "a,b",
    [("a/b", "a_b"), ("a/b", "a%2Fb"), ("a\\b", "a/b"), ("a%b", "a%25b")],
)
def test_name_for_separator_refs_stay_distinct(a, b):
    p = Path("libs/core.jar")
    assert name_for(p, a) != name_for(p, b)
    assert strip_ref(name_for(p, a), a) == p
