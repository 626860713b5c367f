import json
import unittest

from codex_persistent_mcp.repo_binding import binding_path, read_repo_session_id, write_repo_session_id
from tests.base import ArtifactDirTestCase


class RepoBindingTests(ArtifactDirTestCase):
    def test_missing_file_reads_as_none(self) -> None:
        self.assertIsNone(read_repo_session_id(str(self._tmp_dir)))

    def test_write_then_read(self) -> None:
        self.assertTrue(write_repo_session_id(str(self._tmp_dir), "s1"))
        self.assertEqual("s1", read_repo_session_id(str(self._tmp_dir)))

        data = json.loads(binding_path(self._tmp_dir).read_text(encoding="utf-8"))
        self.assertEqual("s1", data["session_id"])
        self.assertTrue(data["updated_at"].endswith("Z"))

    def test_write_keeps_other_keys(self) -> None:
        path = binding_path(self._tmp_dir)
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({"session_id": "old", "note": "keep me"}), encoding="utf-8")

        write_repo_session_id(str(self._tmp_dir), "new")

        data = json.loads(path.read_text(encoding="utf-8"))
        self.assertEqual("new", data["session_id"])
        self.assertEqual("keep me", data["note"])

    def test_invalid_contents_read_as_none(self) -> None:
        path = binding_path(self._tmp_dir)
        path.parent.mkdir(parents=True)
        for contents in ("not json", "[1, 2]", '{"session_id": ""}', '{"session_id": 7}'):
            path.write_text(contents, encoding="utf-8")
            self.assertIsNone(read_repo_session_id(str(self._tmp_dir)), contents)

    def test_write_failure_is_swallowed(self) -> None:
        blocker = self._tmp_dir / "blocker"
        blocker.write_text("file, not a repo", encoding="utf-8")
        self.assertFalse(write_repo_session_id(str(blocker), "s1"))


if __name__ == "__main__":
    unittest.main()
