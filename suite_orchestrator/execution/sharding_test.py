"""Unit tests for shard creation."""

from __future__ import annotations

import pytest

from suite_orchestrator.execution.sharding import create_shards, shard_tests


class TestCreateShards:
    """Tests for create_shards()."""

    def test_round_robin(self):
        """Five files over two shards alternate between the shards."""
        shards = create_shards(["f1", "f2", "f3", "f4", "f5"], 2)
        assert [s.files for s in shards] == [["f1", "f3", "f5"], ["f2", "f4"]]

    def test_indices_and_totals(self):
        shards = create_shards(["f1", "f2", "f3"], 3)
        assert [(s.index, s.total) for s in shards] == [(0, 3), (1, 3), (2, 3)]

    def test_shard_env(self):
        """Each shard carries its index and the shard total as env values."""
        shards = create_shards(["f1"], 2)
        assert shards[1].env == {"TEST_SHARD_INDEX": "1", "TEST_TOTAL_SHARDS": "2"}

    def test_more_shards_than_files(self):
        """Extra shards are empty."""
        shards = create_shards(["f1"], 3)
        assert [s.files for s in shards] == [["f1"], [], []]

    def test_single_shard(self):
        shards = create_shards(["f1", "f2"], 1)
        assert len(shards) == 1
        assert shards[0].files == ["f1", "f2"]

    def test_empty_files(self):
        shards = create_shards([], 4)
        assert len(shards) == 4
        assert all(s.files == [] for s in shards)

    @pytest.mark.parametrize("n_files,n_shards", [(0, 1), (7, 3), (10, 10), (13, 4), (3, 8)])
    def test_partition(self, n_files, n_shards):
        """Shards cover every file exactly once."""
        files = [f"f{i}" for i in range(n_files)]
        shards = create_shards(files, n_shards)
        combined = [f for s in shards for f in s.files]
        assert sorted(combined) == sorted(files)
        assert len(combined) == len(set(combined))

    def test_deterministic(self):
        files = [f"f{i}" for i in range(20)]
        assert create_shards(files, 4) == create_shards(files, 4)

    @pytest.mark.parametrize("count", [0, -1])
    def test_invalid_shard_count(self, count):
        with pytest.raises(ValueError, match="shard_count"):
            create_shards(["f1"], count)


class TestShardTests:
    """Tests for the shard_tests() convenience function."""

    def test_returns_requested_shard(self):
        shard = shard_tests(["f1", "f2", "f3", "f4", "f5"], 2, 1)
        assert shard is not None
        assert shard.files == ["f2", "f4"]

    def test_out_of_range_returns_none(self):
        assert shard_tests(["f1"], 2, 2) is None
        assert shard_tests(["f1"], 2, -1) is None
