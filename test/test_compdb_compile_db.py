#!/usr/bin/env python3
"""Tests for compdb compile_db: loading, merging and atomic saving."""

import os
import sys
import json
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from compdb.compile_db import CompilationDatabase, CompileCommand
from compdb.constants import MERGE_SKIP_EXISTING, DatabaseError


def _command(file: str, *arguments: str, directory: str = "C:\\src") -> CompileCommand:
    return CompileCommand(directory=directory, file=file, arguments=["cl.exe", *arguments, file])


class TestCompileCommand:
    """Tests for the record type."""

    @pytest.mark.unit
    def test_to_dict_key_order(self) -> None:
        data = _command("a.cpp", "/DX").to_dict()
        assert list(data) == ["directory", "arguments", "file"]

    @pytest.mark.unit
    def test_from_dict_preserves_command_and_output(self) -> None:
        command = CompileCommand.from_dict({"directory": "/d", "file": "a.cpp", "command": "cl a.cpp", "output": "a.obj", "unknown": 1})
        assert command.arguments == []
        assert command.to_dict() == {"directory": "/d", "file": "a.cpp", "command": "cl a.cpp", "output": "a.obj"}

    @pytest.mark.unit
    @pytest.mark.parametrize("data", [[], "text", {"file": "a.cpp"}, {"directory": "/d"}, {"directory": "/d", "file": "a.cpp", "arguments": "x"}, {"directory": "/d", "file": "a.cpp", "arguments": ["cl", 3]}])
    def test_from_dict_rejects_invalid_entries(self, data: object) -> None:
        with pytest.raises(DatabaseError):
            CompileCommand.from_dict(data)


class TestMerge:
    """Tests for the two merge policies."""

    @pytest.mark.unit
    def test_new_key_appended(self) -> None:
        database = CompilationDatabase()
        assert database.merge(_command("a.cpp")) is True
        assert database.merge(_command("b.cpp")) is True
        assert [command.file for command in database] == ["a.cpp", "b.cpp"]

    @pytest.mark.unit
    def test_same_file_in_other_directory_is_new_key(self) -> None:
        database = CompilationDatabase()
        database.merge(_command("a.cpp", directory="C:\\one"))
        database.merge(_command("a.cpp", directory="C:\\two"))
        assert len(database) == 2

    @pytest.mark.unit
    def test_overwrite_replaces_in_place(self) -> None:
        database = CompilationDatabase([_command("a.cpp", "/DOLD"), _command("b.cpp")])
        assert database.merge(_command("a.cpp", "/DNEW")) is True

        assert len(database) == 2
        assert [command.file for command in database] == ["a.cpp", "b.cpp"]
        stored = database.get("C:\\src", "a.cpp")
        assert stored is not None
        assert stored.arguments == ["cl.exe", "/DNEW", "a.cpp"]

    @pytest.mark.unit
    def test_skip_existing_keeps_entry(self) -> None:
        database = CompilationDatabase([_command("a.cpp", "/DOLD")], merge_policy=MERGE_SKIP_EXISTING)
        assert database.merge(_command("a.cpp", "/DNEW")) is False
        assert database.merge(_command("b.cpp")) is True

        stored = database.get("C:\\src", "a.cpp")
        assert stored is not None
        assert stored.arguments == ["cl.exe", "/DOLD", "a.cpp"]
        assert len(database) == 2

    @pytest.mark.unit
    def test_duplicate_initial_entries_rejected(self) -> None:
        with pytest.raises(DatabaseError, match="Duplicate"):
            CompilationDatabase([_command("a.cpp"), _command("a.cpp")])

    @pytest.mark.unit
    def test_unknown_policy_rejected(self) -> None:
        with pytest.raises(ValueError):
            CompilationDatabase(merge_policy="replace")


class TestLoadAndSave:
    """Tests for reading and writing compile_commands.json."""

    @pytest.mark.unit
    def test_missing_file_starts_empty(self, output_path: str) -> None:
        assert len(CompilationDatabase.load(output_path)) == 0

    @pytest.mark.unit
    def test_empty_file_starts_empty(self, output_path: str) -> None:
        Path(output_path).write_text("", encoding="utf-8")
        assert len(CompilationDatabase.load(output_path)) == 0

    @pytest.mark.unit
    def test_non_string_arguments_rejected(self, output_path: str) -> None:
        Path(output_path).write_text(json.dumps([{"directory": "/d", "file": "a.cpp", "arguments": ["cl", None, "a.cpp"]}]), encoding="utf-8")

        with pytest.raises(DatabaseError, match="expected list of strings"):
            CompilationDatabase.load(output_path)

    @pytest.mark.unit
    def test_save_then_load(self, output_path: str) -> None:
        database = CompilationDatabase()
        database.merge(_command("a.cpp", "/I", "inc"))
        database.merge(_command("b.c"))
        database.save(output_path)

        loaded = CompilationDatabase.load(output_path)
        assert [command.to_dict() for command in loaded] == [command.to_dict() for command in database]

    @pytest.mark.unit
    def test_save_is_indented_json_array(self, output_path: str) -> None:
        database = CompilationDatabase([_command("a.cpp")])
        database.save(output_path)

        text = Path(output_path).read_text(encoding="utf-8")
        assert text.startswith("[\n  {")
        assert json.loads(text) == [{"directory": "C:\\src", "arguments": ["cl.exe", "a.cpp"], "file": "a.cpp"}]
        assert not os.path.exists(output_path + ".tmp")

    @pytest.mark.unit
    def test_load_keeps_existing_entries_verbatim(self, output_path: str) -> None:
        entries = [{"directory": "/proj", "command": "clang++ -c x.cpp", "file": "x.cpp"}]
        Path(output_path).write_text(json.dumps(entries), encoding="utf-8")

        database = CompilationDatabase.load(output_path)
        database.merge(_command("a.cpp"))
        database.save(output_path)

        saved = json.loads(Path(output_path).read_text(encoding="utf-8"))
        assert saved[0] == {"directory": "/proj", "file": "x.cpp", "command": "clang++ -c x.cpp"}
        assert saved[1]["file"] == "a.cpp"

    @pytest.mark.unit
    def test_malformed_json_is_fatal(self, output_path: str) -> None:
        Path(output_path).write_text("[{", encoding="utf-8")
        with pytest.raises(DatabaseError, match="Failed to parse"):
            CompilationDatabase.load(output_path)

    @pytest.mark.unit
    def test_non_list_json_is_fatal(self, output_path: str) -> None:
        Path(output_path).write_text('{"file": "a.cpp"}', encoding="utf-8")
        with pytest.raises(DatabaseError, match="expected list"):
            CompilationDatabase.load(output_path)

    @pytest.mark.unit
    def test_save_into_missing_directory_fails(self, temp_dir: str) -> None:
        path = os.path.join(temp_dir, "missing", "compile_commands.json")
        with pytest.raises(DatabaseError, match="Failed to write"):
            CompilationDatabase().save(path)
