"""
Unit tests for distributive.checklist: decoding, binding, ordering, error
annotation and the file / directory / stdin / URL loaders.
"""

from __future__ import annotations

import io
import json

import pytest

import distributive.checks  # noqa: F401
from distributive import checklist as checklist_module
from distributive.check import Check, success
from distributive.checklist import (
    cache_file_name,
    checklist_from_bytes,
    checklist_from_file,
    checklist_from_stdin,
    checklist_from_url,
    checklists_from_dir,
    decode_document,
    parse_checklist,
)
from distributive.errors import (
    ChecklistIOError,
    DecodeError,
    EmptyChecklistError,
    ParameterLengthError,
    ParameterTypeError,
    UnknownCheckError,
)
from distributive.registry import Registry

FS_SMOKE = """\
name: "fs-smoke"
checklist:
  - id: "File"
    parameters: ["/proc/net/tcp"]
  - id: "Directory"
    parameters: ["/tmp"]
"""


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


class TestDecode:
    def test_yaml(self):
        doc = decode_document(FS_SMOKE)
        assert doc.name == "fs-smoke"
        assert [e.id for e in doc.checklist] == ["File", "Directory"]
        assert doc.checklist[0].parameters == ["/proc/net/tcp"]

    def test_json_decodes_to_the_same_shape(self):
        as_json = json.dumps(
            {
                "name": "fs-smoke",
                "checklist": [
                    {"id": "File", "parameters": ["/proc/net/tcp"]},
                    {"id": "Directory", "parameters": ["/tmp"]},
                ],
            }
        ).encode()
        assert decode_document(as_json) == decode_document(FS_SMOKE)

    def test_yaml_flow_mapping(self):
        doc = decode_document("{name: flow, checklist: [{id: Directory, parameters: [/tmp]}]}")
        assert doc.name == "flow"
        assert doc.checklist[0].id == "Directory"
        assert doc.checklist[0].parameters == ["/tmp"]

    def test_unknown_fields_are_ignored(self):
        doc = decode_document(
            "name: x\nowner: ops\nchecklist:\n  - id: File\n    parameters: [/tmp]\n    severity: high\n"
        )
        assert doc.checklist[0].id == "File"

    def test_missing_name_is_empty(self):
        assert decode_document("checklist:\n  - id: File\n    parameters: [/tmp]\n").name == ""

    def test_scalar_parameters_become_strings(self):
        doc = decode_document("checklist:\n  - id: Port\n    parameters: [80, true, 1.5]\n")
        assert doc.checklist[0].parameters == ["80", "true", "1.5"]

    def test_missing_parameters_is_empty_list(self):
        assert decode_document("checklist:\n  - id: File\n").checklist[0].parameters == []

    @pytest.mark.parametrize(
        "text",
        [
            "name: [unclosed",
            '{"name": "x", "checklist": [}',
            "- just\n- a list\n",
            "checklist: not-a-list\n",
            "checklist:\n  - parameters: [a]\n",
            "checklist:\n  - id: File\n    parameters: {a: b}\n",
        ],
    )
    def test_malformed_documents(self, text):
        with pytest.raises(DecodeError):
            decode_document(text)

    def test_invalid_utf8(self):
        with pytest.raises(DecodeError, match="UTF-8"):
            decode_document(b"\xff\xfe\x00name")


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class TestParse:
    def test_fs_smoke(self):
        checklist = parse_checklist(FS_SMOKE, origin="file:/etc/distributive.d/fs.yaml")
        assert checklist.name == "fs-smoke"
        assert checklist.origin == "file:/etc/distributive.d/fs.yaml"
        assert len(checklist) == 2
        assert [type(c).__name__ for c in checklist.checks] == ["File", "Directory"]
        assert checklist.ids == ("File", "Directory")
        assert all(c.validated for c in checklist.checks)

    def test_default_origin(self):
        assert checklist_from_bytes(FS_SMOKE).origin == "bytes"

    def test_document_order_is_preserved(self):
        entries = "".join(f"  - id: File\n    parameters: [/path/{i}]\n" for i in range(50))
        checklist = parse_checklist("name: many\nchecklist:\n" + entries, max_workers=8)
        assert [c.path for c in checklist.checks] == [f"/path/{i}" for i in range(50)]

    def test_case_insensitive_ids(self):
        lower = parse_checklist("checklist:\n  - id: file\n    parameters: [/tmp]\n")
        upper = parse_checklist("checklist:\n  - id: FILE\n    parameters: [/tmp]\n")
        assert type(lower.checks[0]) is type(upper.checks[0])
        assert vars(lower.checks[0]) == vars(upper.checks[0])

    def test_single_check(self):
        assert len(parse_checklist("checklist:\n  - id: Directory\n    parameters: [/tmp]\n")) == 1

    def test_idempotent(self):
        a = parse_checklist(FS_SMOKE)
        b = parse_checklist(FS_SMOKE)
        assert a.checks is not b.checks
        assert [vars(c) for c in a.checks] == [vars(c) for c in b.checks]

    @pytest.mark.parametrize("text", ["name: empty\nchecklist: []\n", "name: nothing\n", ""])
    def test_empty_checklist_rejected(self, text):
        with pytest.raises(EmptyChecklistError):
            parse_checklist(text)

    def test_unknown_id_cites_document_id(self):
        with pytest.raises(UnknownCheckError) as info:
            parse_checklist('name: "unknown"\nchecklist:\n  - id: "NotAnActualCheck"\n    parameters: ["x"]\n')
        assert info.value.check_id == "NotAnActualCheck"
        assert "NotAnActualCheck" in str(info.value)

    def test_arity_error_is_annotated(self):
        text = (
            "checklist:\n"
            "  - id: Directory\n    parameters: [/tmp]\n"
            '  - id: "File"\n    parameters: []\n'
        )
        with pytest.raises(ParameterLengthError) as info:
            parse_checklist(text)
        assert info.value.index == 1
        assert info.value.entry_id == "File"
        assert "expected: 1, got: 0" in str(info.value)
        assert str(info.value).startswith("checklist entry 1 (File)")

    def test_type_error_is_annotated(self):
        with pytest.raises(ParameterTypeError) as info:
            parse_checklist("checklist:\n  - id: Port\n    parameters: [http]\n")
        assert info.value.parameter == "http"
        assert info.value.index == 0

    def test_first_failing_entry_is_reported(self):
        text = (
            "checklist:\n"
            "  - id: Directory\n    parameters: [/tmp]\n"
            "  - id: Port\n    parameters: [nope]\n"
            "  - id: NoSuchCheck\n    parameters: []\n"
        )
        with pytest.raises(ParameterTypeError):
            parse_checklist(text)

    def test_uses_the_given_registry(self):
        created = []

        class Counting(Check):
            arity = 0

            def __init__(self):
                created.append(self)

            def bind(self, parameters):
                pass

            def status(self):
                return success()

        reg = Registry()
        reg.register("Counting", Counting)
        checklist = parse_checklist("checklist:\n  - id: counting\n  - id: COUNTING\n", registry=reg)
        assert len(created) == 2
        assert checklist.checks[0] is not checklist.checks[1]
        with pytest.raises(UnknownCheckError):
            parse_checklist("checklist:\n  - id: File\n    parameters: [/tmp]\n", registry=reg)


# ---------------------------------------------------------------------------
# Loaders
# ---------------------------------------------------------------------------


class TestFileLoaders:
    def test_from_file(self, tmp_path):
        path = tmp_path / "fs.yaml"
        path.write_text(FS_SMOKE)
        assert checklist_from_file(path).origin == f"file:{path}"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ChecklistIOError) as info:
            checklist_from_file(tmp_path / "absent.yaml")
        assert info.value.kind == "IOError"

    def test_from_stdin(self):
        checklist = checklist_from_stdin(io.BytesIO(FS_SMOKE.encode()))
        assert checklist.origin == "stdin"
        assert len(checklist) == 2

    def test_empty_stdin(self):
        with pytest.raises(EmptyChecklistError):
            checklist_from_stdin(io.BytesIO(b""))

    def test_from_dir(self, tmp_path):
        (tmp_path / "b.yml").write_text(FS_SMOKE)
        (tmp_path / "a.json").write_text('{"name": "j", "checklist": [{"id": "Directory", "parameters": ["/tmp"]}]}')
        (tmp_path / "c.yaml").write_text(FS_SMOKE)
        (tmp_path / "notes.txt").write_text("not a checklist")
        (tmp_path / "nested.yaml").mkdir()
        checklists = checklists_from_dir(tmp_path)
        assert [c.origin for c in checklists] == [
            f"dir:{tmp_path}/a.json",
            f"dir:{tmp_path}/b.yml",
            f"dir:{tmp_path}/c.yaml",
        ]

    def test_dir_trailing_slash(self, tmp_path):
        (tmp_path / "a.yaml").write_text(FS_SMOKE)
        assert checklists_from_dir(f"{tmp_path}/")[0].origin == f"dir:{tmp_path}/a.yaml"

    def test_empty_dir(self, tmp_path):
        assert checklists_from_dir(tmp_path) == []

    def test_missing_dir(self, tmp_path):
        with pytest.raises(ChecklistIOError):
            checklists_from_dir(tmp_path / "absent")

    def test_bad_file_in_dir_aborts(self, tmp_path):
        (tmp_path / "a.yaml").write_text(FS_SMOKE)
        (tmp_path / "b.yaml").write_text("checklist: []\n")
        with pytest.raises(EmptyChecklistError):
            checklists_from_dir(tmp_path)


class TestUrlLoader:
    URL = "https://example.com/checks/web.json?v=2"

    def _fake_fetch(self, monkeypatch, body=FS_SMOKE.encode()):
        calls = []

        def fetch(url, timeout=10.0):
            calls.append(url)
            return body

        monkeypatch.setattr(checklist_module, "fetch_url", fetch)
        return calls

    def test_cache_file_name(self):
        assert cache_file_name(self.URL) == "httpsexamplecomcheckswebjsonv=2.json"

    def test_fetches_then_uses_cache(self, tmp_path, monkeypatch):
        calls = self._fake_fetch(monkeypatch)
        cache = tmp_path / "cache"
        first = checklist_from_url(self.URL, cache_dir=cache, fallback_dir=tmp_path / "fallback")
        second = checklist_from_url(self.URL, cache_dir=cache, fallback_dir=tmp_path / "fallback")
        assert calls == [self.URL]
        assert first.origin == second.origin == f"url:{self.URL}"
        assert (cache / cache_file_name(self.URL)).read_bytes() == FS_SMOKE.encode()

    def test_no_cache_always_fetches(self, tmp_path, monkeypatch):
        calls = self._fake_fetch(monkeypatch)
        for _ in range(2):
            checklist_from_url(self.URL, use_cache=False, cache_dir=tmp_path, fallback_dir=tmp_path / "fb")
        assert len(calls) == 2

    def test_falls_back_when_primary_unusable(self, tmp_path, monkeypatch):
        self._fake_fetch(monkeypatch)
        blocker = tmp_path / "blocker"
        blocker.write_text("a file where a directory should be")
        fallback = tmp_path / "fallback"
        checklist_from_url(self.URL, cache_dir=blocker / "sub", fallback_dir=fallback)
        assert (fallback / cache_file_name(self.URL)).is_file()

    def test_no_writable_cache_dir(self, tmp_path, monkeypatch):
        self._fake_fetch(monkeypatch)
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        with pytest.raises(ChecklistIOError):
            checklist_from_url(self.URL, cache_dir=blocker / "a", fallback_dir=blocker / "b")

    def test_unsupported_scheme(self):
        with pytest.raises(ChecklistIOError, match="http"):
            checklist_module.fetch_url("file:///etc/passwd")
