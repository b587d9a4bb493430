from __future__ import annotations

import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path
from dataclasses import replace
from typing import Dict

from ustar.content import Binary
from ustar.metadata import LinkIndicator, default_metadata
from ustar.reader import ArchiveReader
from ustar.writer import ArchiveWriter


def _build_fixture_tree(root: Path) -> Dict[str, bytes]:
    files: Dict[str, bytes] = {}
    (root / "docs").mkdir()
    (root / "docs" / "notes").mkdir()
    content = b"hello world\n" * 20
    (root / "docs" / "readme.txt").write_bytes(content)
    os.chmod(root / "docs" / "readme.txt", 0o640)
    files["docs/readme.txt"] = content

    bin_data = bytes(range(256)) * 9  # 2304 bytes, not a block multiple
    (root / "docs" / "notes" / "binary.bin").write_bytes(bin_data)
    files["docs/notes/binary.bin"] = bin_data

    (root / "docs" / "notes" / "empty.txt").write_bytes(b"")
    files["docs/notes/empty.txt"] = b""

    (root / "Makefile").write_bytes(b"all:\n\techo ok\n")
    files["Makefile"] = b"all:\n\techo ok\n"
    return files


class CLIIntegrationTests(unittest.TestCase):
    def run_cli(self, args, *, expect: int | None = 0, cwd: Path | None = None):
        cmd = [sys.executable, "-m", "ustar.cli"] + list(args)
        env = os.environ.copy()
        repo_root = Path(__file__).resolve().parent
        existing = env.get("PYTHONPATH", "")
        env["PYTHONPATH"] = str(repo_root) if not existing else f"{repo_root}{os.pathsep}{existing}"
        proc = subprocess.run(
            cmd,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            env=env,
        )
        if expect is not None and proc.returncode != expect:
            raise AssertionError(
                f"CLI exited {proc.returncode}, expected {expect}\nCommand: {' '.join(cmd)}\nSTDOUT:\n{proc.stdout}\nSTDERR:\n{proc.stderr}"
            )
        return proc

    def run_corrupt(self, args):
        repo_root = Path(__file__).resolve().parent
        env = os.environ.copy()
        existing = env.get("PYTHONPATH", "")
        env["PYTHONPATH"] = str(repo_root) if not existing else f"{repo_root}{os.pathsep}{existing}"
        proc = subprocess.run(
            [sys.executable, str(repo_root / "scripts" / "corrupt.py")] + list(args),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            env=env,
        )
        self.assertEqual(proc.returncode, 0, proc.stderr)
        return proc

    def make_workspace(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        root = Path(tmp.name)
        src = root / "src"
        src.mkdir()
        files = _build_fixture_tree(src)
        return root, src, files

    def test_pack_list_unpack_roundtrip(self):
        root, src, files = self.make_workspace()
        archive = root / "archive.tar"
        pack_proc = self.run_cli(["pack", str(archive), str(src)])
        self.assertIn("Done: 4 files", pack_proc.stdout)
        self.assertEqual(archive.stat().st_size % 512, 0)

        list_proc = self.run_cli(["list", str(archive)])
        self.assertIn("text\t240\tsrc/docs/readme.txt", list_proc.stdout)
        self.assertIn("binary\t2304\tsrc/docs/notes/binary.bin", list_proc.stdout)

        long_proc = self.run_cli(["list", "--long", str(archive)])
        self.assertIn("-rw-r----- ", long_proc.stdout)

        verify_proc = self.run_cli(["verify", str(archive)])
        self.assertIn("OK (4 entries)", verify_proc.stdout)

        out = root / "out"
        out.mkdir()
        self.run_cli(["unpack", str(archive), "--outdir", str(out)])
        for rel, data in files.items():
            extracted = out / "src" / rel
            self.assertTrue(extracted.is_file(), rel)
            self.assertEqual(extracted.read_bytes(), data, rel)
        self.assertEqual(os.stat(out / "src" / "docs" / "readme.txt").st_mode & 0o777, 0o640)

    def test_conflict_policies(self):
        root, src, _files = self.make_workspace()
        archive = root / "arc.tar"
        self.run_cli(["pack", str(archive), str(src / "Makefile")])

        out_skip = root / "ex_skip"
        out_skip.mkdir()
        (out_skip / "Makefile").write_text("beta")
        skip_proc = self.run_cli(["unpack", str(archive), "--outdir", str(out_skip), "--exists", "skip"])
        self.assertIn("skipping: Makefile", skip_proc.stdout)
        self.assertEqual((out_skip / "Makefile").read_text(), "beta")

        out_rename = root / "ex_rename"
        out_rename.mkdir()
        (out_rename / "Makefile").write_text("beta")
        rename_proc = self.run_cli(["unpack", str(archive), "--outdir", str(out_rename), "--exists", "rename"])
        self.assertIn("renamed to", rename_proc.stdout)
        self.assertEqual((out_rename / "Makefile (1)").read_bytes(), b"all:\n\techo ok\n")

        out_overwrite = root / "ex_overwrite"
        out_overwrite.mkdir()
        (out_overwrite / "Makefile").write_text("beta")
        self.run_cli(["unpack", str(archive), "--outdir", str(out_overwrite), "--exists", "overwrite"])
        self.assertEqual((out_overwrite / "Makefile").read_bytes(), b"all:\n\techo ok\n")

        out_fail = root / "ex_fail"
        out_fail.mkdir()
        (out_fail / "Makefile").write_text("beta")
        fail_proc = self.run_cli(["unpack", str(archive), "--outdir", str(out_fail), "--exists", "fail"], expect=2)
        self.assertIn("Destination exists", fail_proc.stderr)

    def test_verify_detects_header_corruption(self):
        root, src, _files = self.make_workspace()
        archive = root / "arc.tar"
        self.run_cli(["pack", str(archive), str(src)])
        r = ArchiveReader.from_path(str(archive))
        r.read_all()
        second = r.header_offsets[1]
        self.run_corrupt(["header", str(archive), "--index", "1", "--within", "5"])
        proc = self.run_cli(["verify", str(archive)], expect=1)
        self.assertIn("FAIL", proc.stdout)
        self.assertIn(f"offset {second}", proc.stdout)

    def test_list_stops_at_broken_magic(self):
        root, src, _files = self.make_workspace()
        archive = root / "arc.tar"
        self.run_cli(["pack", str(archive), str(src)])
        r = ArchiveReader.from_path(str(archive))
        r.read_all()
        third = r.header_offsets[2]
        corrupt_proc = self.run_corrupt(["magic", str(archive), "--index", "2"])
        self.assertIn(f"offset {third + 257}", corrupt_proc.stdout)
        proc = self.run_cli(["list", str(archive)])
        self.assertEqual(len(proc.stdout.strip().splitlines()), 2)
        self.assertIn(f"offset {third}", proc.stderr)

    def test_short_list_shows_full_split_path(self):
        root, _src, _files = self.make_workspace()
        archive = root / "deep.tar"
        path = "d" * 60 + "/" + "e" * 60 + "/notes.txt"
        with ArchiveWriter(str(archive)) as w:
            w.add_text(path, "deep")
            w.finalize()
        proc = self.run_cli(["list", str(archive)])
        self.assertEqual(proc.stdout.strip(), f"text\t4\t{path}")

    @unittest.skipUnless(hasattr(os, "link"), "hard links not supported")
    def test_unpack_hard_links(self):
        root, _src, _files = self.make_workspace()
        archive = root / "links.tar"
        with ArchiveWriter(str(archive)) as w:
            w.add_text("a.txt", "hello")
            w.add(
                replace(default_metadata("b.txt"), link_indicator=LinkIndicator.HARD_LINK, linked_file_name="a.txt"),
                Binary(b""),
            )
            w.add(
                replace(default_metadata("c.txt"), link_indicator=LinkIndicator.HARD_LINK, linked_file_name="missing.txt"),
                Binary(b""),
            )
            w.finalize()
        out = root / "out"
        out.mkdir()
        proc = self.run_cli(["unpack", str(archive), "--outdir", str(out)])
        self.assertEqual((out / "b.txt").read_text(), "hello")
        self.assertTrue(os.path.samefile(out / "a.txt", out / "b.txt"))
        self.assertFalse(os.path.lexists(out / "c.txt"))
        self.assertIn("skipping: c.txt", proc.stdout)
        self.assertIn("extracted 2/3", proc.stdout)

    def test_missing_input_is_an_error(self):
        root, _src, _files = self.make_workspace()
        proc = self.run_cli(["pack", str(root / "x.tar"), str(root / "does-not-exist")], expect=2)
        self.assertIn("Error:", proc.stderr)

    @unittest.skipUnless(hasattr(os, "symlink"), "symlinks not supported")
    def test_symlinks_roundtrip(self):
        root, src, _files = self.make_workspace()
        try:
            os.symlink("docs/readme.txt", src / "link.txt")
        except OSError:
            self.skipTest("cannot create symlinks here")
        archive = root / "arc.tar"
        self.run_cli(["pack", str(archive), str(src)])
        out = root / "out"
        out.mkdir()
        self.run_cli(["unpack", str(archive), "--outdir", str(out)])
        link = out / "src" / "link.txt"
        self.assertTrue(link.is_symlink())
        self.assertEqual(os.readlink(link), "docs/readme.txt")


if __name__ == "__main__":
    unittest.main()
