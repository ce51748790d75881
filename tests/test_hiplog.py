#!/usr/bin/env python
from __future__ import annotations
import os
import tempfile
import pytest # type: ignore
from hiplog.hiplog import main, sketch_file
from hiplog.lib.hyperloglog import HyperLogLog
from hiplog.lib.hyperloglog_hip import HyperLogLogHIP

@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdirname:
        yield tmpdirname

def write_lines(path: str, lines) -> str:
    with open(path, 'w') as f:
        for line in lines:
            f.write(f"{line}\n")
    return path

@pytest.mark.quick
class TestCommandLine:
    """Tests for the hiplog command line tool."""

    def test_sketch_file_skips_blank_lines(self, temp_dir):
        path = write_lines(os.path.join(temp_dir, "a.txt"),
                           ["alice", "bob", "", "alice", "carol\r"])
        sketch = sketch_file(path, precision=12)
        assert isinstance(sketch, HyperLogLogHIP)
        expected = HyperLogLogHIP(precision=12)
        for name in [b"alice", b"bob", b"carol"]:
            expected.add(name)
        assert sketch.estimate() == expected.estimate()

    def test_count(self, temp_dir, capsys):
        path = write_lines(os.path.join(temp_dir, "users.txt"),
                           [f"user{i % 300}" for i in range(1000)])
        main(["count", path, "-p", "12"])
        out = capsys.readouterr().out.strip()
        filename, estimate = out.split("\t")
        assert filename == path
        assert abs(float(estimate) - 300) < 15

    def test_count_classic(self, temp_dir, capsys):
        path = write_lines(os.path.join(temp_dir, "users.txt"),
                           [f"user{i}" for i in range(200)])
        main(["count", path, "--classic", "-p", "12"])
        estimate = float(capsys.readouterr().out.strip().split("\t")[1])
        assert abs(estimate - 200) < 15

    def test_sketch_merge_info(self, temp_dir, capsys):
        left = write_lines(os.path.join(temp_dir, "left.txt"), [f"l{i}" for i in range(500)])
        right = write_lines(os.path.join(temp_dir, "right.txt"), [f"r{i}" for i in range(500)])
        left_sketch = os.path.join(temp_dir, "left.hll")
        right_sketch = os.path.join(temp_dir, "right.hll")
        union_sketch = os.path.join(temp_dir, "union.hll")

        main(["sketch", left, "-o", left_sketch, "-p", "10", "--seed", "5"])
        main(["sketch", right, "-o", right_sketch, "-p", "10", "--seed", "5"])
        assert HyperLogLogHIP.load(left_sketch).seed == 5

        main(["merge", left_sketch, right_sketch, "-o", union_sketch])
        union = HyperLogLogHIP.load(union_sketch)
        assert abs(union.estimate() - 1000) / 1000 < 0.15
        capsys.readouterr()

        main(["info", union_sketch])
        lines = dict(line.split("\t") for line in capsys.readouterr().out.strip().splitlines())
        assert lines["precision"] == "10"
        assert lines["registers"] == "1024"
        assert lines["seed"] == "5"
        assert float(lines["estimate"]) == pytest.approx(union.estimate(), abs=0.01)

    def test_merge_mismatched_precision(self, temp_dir, capsys):
        a = os.path.join(temp_dir, "a.hll")
        b = os.path.join(temp_dir, "b.hll")
        HyperLogLogHIP(precision=8).write(a)
        HyperLogLogHIP(precision=9).write(b)
        with pytest.raises(SystemExit) as exc:
            main(["merge", a, b, "-o", os.path.join(temp_dir, "out.hll")])
        assert exc.value.code == 2
        assert "number of registers doesn't match" in capsys.readouterr().err

    def test_info_classic_sketch_needs_flag(self, temp_dir, capsys):
        path = os.path.join(temp_dir, "classic.hll")
        HyperLogLog(precision=8).write(path)
        with pytest.raises(SystemExit) as exc:
            main(["info", path])
        assert exc.value.code == 2
        assert "cannot load sketch" in capsys.readouterr().err
        main(["info", path, "--classic"])
        assert "precision\t8" in capsys.readouterr().out

    def test_missing_input(self, temp_dir, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["count", os.path.join(temp_dir, "nope.txt")])
        assert exc.value.code == 2
        assert "does not exist" in capsys.readouterr().err

    def test_invalid_precision(self, temp_dir, capsys):
        path = write_lines(os.path.join(temp_dir, "a.txt"), ["x"])
        with pytest.raises(SystemExit) as exc:
            main(["count", path, "-p", "31"])
        assert exc.value.code == 2
        assert "bit width must be in the range [4,30]" in capsys.readouterr().err

    def test_high_precision_warns(self, temp_dir, capsys):
        path = write_lines(os.path.join(temp_dir, "a.txt"), ["x"])
        with pytest.warns(RuntimeWarning, match="above the recommended maximum"):
            main(["count", path, "-p", "19"])

    def test_unreadable_sketch_path(self, temp_dir, capsys):
        """A directory in place of a sketch file exits with status 2."""
        with pytest.raises(SystemExit) as exc:
            main(["info", temp_dir])
        assert exc.value.code == 2
        assert "cannot load sketch" in capsys.readouterr().err
