"""Deterministic round-robin partitioning of test files into shards."""

from __future__ import annotations

from dataclasses import dataclass, field

SHARD_INDEX_ENV = "TEST_SHARD_INDEX"
TOTAL_SHARDS_ENV = "TEST_TOTAL_SHARDS"


@dataclass
class TestShard:
    """One shard of a partitioned file list."""

    index: int
    total: int
    files: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)


def create_shards(files: list[str], shard_count: int) -> list[TestShard]:
    """Split files into shards using round-robin assignment.

    File ``i`` goes to shard ``i % shard_count``, so the same file order
    and shard count always produce the same shards. Every file lands in
    exactly one shard; shards may be empty when there are fewer files than
    shards.

    Args:
        files: Ordered list of test files.
        shard_count: Total number of shards.

    Returns:
        shard_count shards indexed 0..shard_count-1.

    Raises:
        ValueError: If shard_count is less than 1.
    """
    if shard_count < 1:
        msg = f"shard_count must be >= 1, got {shard_count}"
        raise ValueError(msg)

    shards = [
        TestShard(
            index=i,
            total=shard_count,
            env={
                SHARD_INDEX_ENV: str(i),
                TOTAL_SHARDS_ENV: str(shard_count),
            },
        )
        for i in range(shard_count)
    ]
    for i, f in enumerate(files):
        shards[i % shard_count].files.append(f)
    return shards


def shard_tests(
    files: list[str],
    shard_count: int,
    shard_index: int,
) -> TestShard | None:
    """Return a single shard, or None if shard_index is out of range."""
    shards = create_shards(files, shard_count)
    if 0 <= shard_index < len(shards):
        return shards[shard_index]
    return None
