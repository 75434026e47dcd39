"""Tests for the in-memory repository backend and the DQL builders."""

from pathlib import Path

import pytest

from deepexport.errors import AuthError, ConfigError, ContentError, DeepExportError, QueryError
from deepexport.models import NodeType
from deepexport.repository import BACKENDS, MemoryRepository, connect
from deepexport.repository.dql import (
    children_query,
    count_documents_query,
    count_folders_query,
    folder_exists_query,
    paged_query,
    query_single_value,
    quote,
)


@pytest.mark.unit
class TestDqlBuilders:
    """Tests for the query builders."""

    def test_quote_doubles_single_quotes(self):
        assert quote("O'Brien") == "'O''Brien'"

    def test_folder_exists_query(self):
        assert folder_exists_query("/Temp") == (
            "select count(*) as _cnt from dm_folder where any r_folder_path = '/Temp'"
        )

    def test_count_documents_query_versions(self):
        assert "dm_document (ALL)" in count_documents_query("/Temp", all_versions=True)
        assert "(ALL)" not in count_documents_query("/Temp")
        assert "r_full_content_size > 0" in count_documents_query("/Temp")

    def test_children_query(self):
        assert children_query("0b00000000000001", all_versions=True) == (
            "select r_object_id from dm_sysobject (ALL) where folder(id('0b00000000000001'))"
        )

    def test_paged_query(self):
        assert paged_query("select r_object_id from dm_sysobject where x = 1", after="09a", limit=10) == (
            "select r_object_id from dm_sysobject where x = 1 and r_object_id > '09a' "
            "order by r_object_id enable (RETURN_TOP 10)"
        )


@pytest.mark.unit
class TestMemoryQueries:
    """Tests for DQL evaluation against the memory backend."""

    def test_folder_exists(self, session):
        assert query_single_value(session, folder_exists_query("/Temp/Sub")) == 1
        assert query_single_value(session, folder_exists_query("/Nope")) == 0

    def test_count_folders_descends(self, session):
        # Sub, Sub/Deep and Empty
        assert query_single_value(session, count_folders_query("/Temp")) == 3

    def test_count_documents(self, session):
        assert query_single_value(session, count_documents_query("/Temp")) == 3
        assert query_single_value(session, count_documents_query("/Temp", all_versions=True)) == 4

    def test_count_documents_excludes_empty_content(self, memory_repo: MemoryRepository):
        memory_repo.add_document("/Temp", "Blank", content=b"")
        memory_repo.add_document("/Temp", "Full", content=b"x")
        session = memory_repo.open_session("dmadmin", "secret")

        assert query_single_value(session, count_documents_query("/Temp")) == 1

    def test_children_current_and_all_versions(self, sample_repo: MemoryRepository, session):
        temp = sample_repo.lookup_folder("/Temp")
        with session.execute(children_query(temp.object_id)) as cursor:
            current = [row["r_object_id"] for row in cursor]
        with session.execute(children_query(temp.object_id, all_versions=True)) as cursor:
            every = [row["r_object_id"] for row in cursor]

        # Report, Notes, Sub, Empty
        assert len(current) == 4
        assert len(every) == 5

    def test_result_cap_truncates(self):
        repo = MemoryRepository("capped", max_result_rows=2)
        for index in range(5):
            repo.add_document("/Temp", f"doc{index}", content=b"x")
        session = repo.open_session("dmadmin")
        folder = repo.lookup_folder("/Temp")

        with session.execute(children_query(folder.object_id)) as cursor:
            assert len(list(cursor)) == 2

    def test_unsupported_query(self, session):
        with pytest.raises(QueryError):
            session.execute("update dm_document objects set title = 'x'")

    def test_query_single_value_without_rows(self, session):
        with pytest.raises(QueryError):
            query_single_value(session, folder_exists_query("/Temp"), column="missing")
        assert session.open_cursors == 0


@pytest.mark.unit
class TestMemoryObjects:
    """Tests for the builder API and object lookups."""

    def test_top_level_folders_are_cabinets(self, memory_repo: MemoryRepository):
        cabinet = memory_repo.add_folder("/Temp")
        folder = memory_repo.add_folder("/Temp/Sub")
        assert cabinet.object_id.startswith("0c")
        assert folder.object_id.startswith("0b")
        assert folder.folder_path == "/Temp/Sub"

    def test_add_folder_is_idempotent(self, memory_repo: MemoryRepository):
        assert memory_repo.add_folder("/A/B") == memory_repo.add_folder("/A/B")

    def test_add_version_moves_current_label(self, memory_repo: MemoryRepository):
        first = memory_repo.add_document("/Temp", "Report", content=b"1")
        second = memory_repo.add_version(first, content=b"2")

        assert second.implicit_version_label == "1.1"
        assert "CURRENT" in second.version_labels
        assert "CURRENT" not in memory_repo.lookup(first.object_id).version_labels

    def test_add_object_is_other(self, memory_repo: MemoryRepository):
        assert memory_repo.add_object("/Temp", "workflow").node_type is NodeType.OTHER

    def test_read_unreadable_content(self, memory_repo: MemoryRepository):
        node = memory_repo.add_document("/Temp", "Broken", content=b"x", unreadable=True)
        with pytest.raises(ContentError):
            memory_repo.read_content(node.object_id)

    def test_get_unknown_object(self, session):
        with pytest.raises(QueryError):
            session.get_object("09ffffffffffffff")


@pytest.mark.unit
class TestSessions:
    """Tests for authentication, release and the backend registry."""

    def test_bad_password(self, memory_repo: MemoryRepository):
        with pytest.raises(AuthError):
            memory_repo.open_session("dmadmin", "wrong")

    def test_released_session_rejects_calls(self, memory_repo: MemoryRepository):
        session = memory_repo.open_session("dmadmin", "secret")
        with session:
            pass
        assert session.released
        with pytest.raises(DeepExportError):
            session.execute(folder_exists_query("/Temp"))

    def test_connect_with_snapshot(self, snapshot_file: Path):
        with connect(str(snapshot_file), "dmadmin", "secret") as opened:
            assert opened.max_result_rows == 4000
            assert opened.get_folder_by_path("/Temp/Archive") is not None
            assert query_single_value(opened, count_documents_query("/Temp", all_versions=True)) == 4

    def test_connect_missing_snapshot(self, temp_dir: Path):
        with pytest.raises(AuthError):
            connect(str(temp_dir / "absent.json"), "dmadmin", "secret")

    def test_connect_unknown_backend(self, memory_repo: MemoryRepository):
        with pytest.raises(ConfigError, match="Unknown repository backend"):
            connect(memory_repo, "dmadmin", "secret", backend="dfc")

    def test_memory_backend_registered(self):
        assert "memory" in BACKENDS

    def test_snapshot_content_file(self, snapshot_file: Path):
        repo = MemoryRepository.from_snapshot(snapshot_file)
        session = repo.open_session("dmadmin", "secret")
        temp = repo.lookup_folder("/Temp")
        with session.execute(children_query(temp.object_id)) as cursor:
            nodes = [session.get_object(row["r_object_id"]) for row in cursor]

        report = next(node for node in nodes if node.name == "Report")
        assert repo.read_content(report.object_id) == b"%PDF-1.4 from file"
        assert report.implicit_version_label == "1.1"
