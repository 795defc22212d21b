import pytest

from reposync.core.comparison import ComparisonEngine, diff_trees, select_for_transfer
from reposync.core.filter import FilterEngine
from reposync.infrastructure.error_handler import (
    ComparisonError,
    RemoteAPIError,
    TreeTooLargeError,
)
from reposync.models import FileStatus, TransferOptions


def test_diff_trees_classifies_and_orders():
    comparisons = diff_trees({"a": "hA", "b": "hB"}, {"a": "hA", "c": "hC"})

    assert [(c.path, c.status) for c in comparisons] == [
        ("b", FileStatus.NEW),
        ("c", FileStatus.DELETED),
        ("a", FileStatus.UNCHANGED),
    ]
    new = comparisons[0]
    assert new.source_hash == "hB"
    assert new.target_hash is None


def test_diff_trees_detects_modifications_and_sizes():
    comparisons = diff_trees(
        {"x.py": "h2", "y.py": "h3"},
        {"x.py": "h1", "y.py": "h3"},
        source_sizes={"x.py": 120, "y.py": 10},
        dest_sizes={"x.py": 100, "y.py": 10},
    )

    assert comparisons[0].status is FileStatus.MODIFIED
    assert comparisons[0].size_diff == 20
    assert comparisons[1].status is FileStatus.UNCHANGED
    assert comparisons[1].size_diff == 0


def test_diff_trees_covers_union_of_paths():
    source = {f"s{i}": str(i) for i in range(5)}
    destination = {f"d{i}": str(i) for i in range(3)}

    comparisons = diff_trees(source, destination)

    assert {c.path for c in comparisons} == set(source) | set(destination)


def test_select_for_transfer_respects_options():
    comparisons = diff_trees({"a": "1", "b": "2", "m": "new"}, {"b": "2", "c": "3", "m": "old"})

    default = select_for_transfer(comparisons, TransferOptions())
    assert [c.path for c in default] == ["a", "m"]

    with_deleted = select_for_transfer(comparisons, TransferOptions(include_deleted=True))
    assert [c.path for c in with_deleted] == ["a", "m", "c"]


@pytest.mark.asyncio
async def test_engine_compares_remote_trees(source, destination):
    source.seed({"a.txt": "same", "b.txt": "only in source", "node_modules/x.js": "x"})
    destination.seed({"a.txt": "same", "c.txt": "only in destination"})
    events = []

    comparisons = await ComparisonEngine(source, destination).compare(
        progress=lambda p, m, d=None: events.append((p, d))
    )

    assert [(c.path, c.status) for c in comparisons] == [
        ("b.txt", FileStatus.NEW),
        ("c.txt", FileStatus.DELETED),
        ("a.txt", FileStatus.UNCHANGED),
    ]
    assert [p for p, _ in events] == [0, 10, 50, 90, 100]
    assert events[-1][1] == {"new": 1, "modified": 0, "deleted": 1, "unchanged": 1}


@pytest.mark.asyncio
async def test_missing_destination_branch_compares_as_empty(source, destination):
    source.seed({"a.txt": "a"})

    comparisons = await ComparisonEngine(source, destination).compare()

    assert [(c.path, c.status) for c in comparisons] == [("a.txt", FileStatus.NEW)]


@pytest.mark.asyncio
async def test_fetch_failure_raises_comparison_error(source, destination):
    source.seed({"a.txt": "a"})
    source.failures["get_tree"] = [RemoteAPIError("Server Error", 500)]

    with pytest.raises(ComparisonError) as excinfo:
        await ComparisonEngine(source, destination).compare()

    assert excinfo.value.fallback_to_full is True
    assert isinstance(excinfo.value.original_error, RemoteAPIError)


@pytest.mark.asyncio
async def test_truncated_tree_fails_the_comparison(source, destination):
    source.seed({"a.txt": "a"})
    source.failures["get_tree"] = [TreeTooLargeError("Tree t1 returned a truncated tree")]

    with pytest.raises(ComparisonError) as excinfo:
        await ComparisonEngine(source, destination).compare()

    assert isinstance(excinfo.value.original_error, TreeTooLargeError)


@pytest.mark.asyncio
async def test_engine_applies_extra_ignore_patterns(source, destination):
    source.seed({"a.txt": "a", "vendor/lib.js": "v"})
    destination.seed({"a.txt": "a", "notes.bak": "old"})

    comparisons = await ComparisonEngine(
        source, destination, FilterEngine(extra_patterns=["vendor/", "*.bak"])
    ).compare()

    assert [(c.path, c.status) for c in comparisons] == [("a.txt", FileStatus.UNCHANGED)]
