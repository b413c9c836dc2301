from __future__ import annotations

import json
from pathlib import Path

from _trace_helpers import (
    ADDRESS,
    TRANSFER,
    TRANSFER_SELECTOR,
    TX_HASH,
    fake_cast_calls,
    run_cli,
    write_fake_cast,
)


def test_annotate_from_trace_file(tmp_path: Path):
    binary, env = write_fake_cast(tmp_path, {"4byte": {"0xabcdabcd": [TRANSFER]}})
    trace_path = tmp_path / "trace.txt"
    trace_path.write_text(f"CALL 0xabcdabcd to {ADDRESS}", encoding="utf-8")

    proc = run_cli(
        "annotate",
        ["--cast-binary", str(binary), "--trace-file", str(trace_path)],
        extra_env=env,
    )
    assert proc.returncode == 0, proc.stdout + proc.stderr
    payload = json.loads(proc.stdout)
    assert payload["ok"] is True
    assert payload["command"] == "annotate"
    assert payload["trace"] == f"CALL 0xabcdabcd [Likely: {TRANSFER}] to {ADDRESS}"
    assert fake_cast_calls(env) == [["4byte", "0xabcdabcd"]]


def test_annotate_reads_stdin(tmp_path: Path):
    binary, env = write_fake_cast(tmp_path, {})
    proc = run_cli(
        "annotate",
        ["--cast-binary", str(binary), "--trace-file", "-", "--compact"],
        extra_env=env,
        stdin="nothing to see",
    )
    assert proc.returncode == 0, proc.stdout + proc.stderr
    payload = json.loads(proc.stdout)
    assert payload["trace"] == "nothing to see"
    assert payload["selector_count"] == 0


def test_analyze_text_report(tmp_path: Path):
    sigs = tmp_path / "sigs.txt"
    sigs.write_text(f"# tokens\n{TRANSFER}\n", encoding="utf-8")
    binary, env = write_fake_cast(
        tmp_path,
        {"run": f"CALL {TRANSFER_SELECTOR}\n", "sig": {TRANSFER: TRANSFER_SELECTOR}},
    )
    proc = run_cli(
        "analyze",
        [
            "--cast-binary",
            str(binary),
            "--tx-hash",
            TX_HASH,
            "--rpc-url",
            "http://127.0.0.1:1",
            "--signature-file",
            str(sigs),
            "--text",
        ],
        extra_env=env,
    )
    assert proc.returncode == 0, proc.stdout + proc.stderr
    assert proc.stdout.startswith(f"Analysis of transaction {TX_HASH}:")
    assert f"CALL {TRANSFER_SELECTOR} [{TRANSFER}]" in proc.stdout

    calls = fake_cast_calls(env)
    assert calls[0] == ["run", TX_HASH, "--trace", "--rpc-url", "http://127.0.0.1:1", "--verbosity", "4"]


def test_lookup_file_invalid_selector_makes_no_calls(tmp_path: Path):
    binary, env = write_fake_cast(tmp_path, {})
    proc = run_cli(
        "lookup-file",
        ["--cast-binary", str(binary), "--selector", "0xdeadbee", "--signature-file", "sigs.txt"],
        extra_env=env,
    )
    assert proc.returncode == 2
    payload = json.loads(proc.stdout)
    assert payload["ok"] is False
    assert payload["error_code"] == "INVALID_SELECTOR"
    assert fake_cast_calls(env) == []


def test_lookup_file_missing_file(tmp_path: Path):
    binary, env = write_fake_cast(tmp_path, {})
    proc = run_cli(
        "lookup-file",
        [
            "--cast-binary",
            str(binary),
            "--selector",
            TRANSFER_SELECTOR,
            "--signature-file",
            str(tmp_path / "absent.txt"),
        ],
        extra_env=env,
    )
    assert proc.returncode == 1
    payload = json.loads(proc.stdout)
    assert payload["error_code"] == "SIGNATURE_FILE_NOT_FOUND"


def test_request_json_drives_trace(tmp_path: Path):
    binary, env = write_fake_cast(
        tmp_path,
        {"run": "CALL 0x11111111", "4byte": {"0x11111111": ["b()", "aaaa()", "cc()", "dddddd()"]}},
    )
    request = {"tx_hash": TX_HASH, "rpc_url": "http://127.0.0.1:1", "verbosity": 5}
    proc = run_cli(
        "trace",
        ["--cast-binary", str(binary), "--request-json", json.dumps(request)],
        extra_env=env,
    )
    assert proc.returncode == 0, proc.stdout + proc.stderr
    payload = json.loads(proc.stdout)
    assert payload["trace"] == "CALL 0x11111111 [Likely: b() or cc() or aaaa()]"
    assert "--verbosity" in payload["argv"]


def test_invalid_trace_request_exit_code(tmp_path: Path):
    binary, env = write_fake_cast(tmp_path, {})
    proc = run_cli("trace", ["--cast-binary", str(binary), "--tx-hash", "0x1234"], extra_env=env)
    assert proc.returncode == 2
    payload = json.loads(proc.stdout)
    assert payload["error_code"] == "INVALID_REQUEST"


def test_missing_cast_binary(tmp_path: Path):
    proc = run_cli("sig", ["--cast-binary", str(tmp_path / "no-cast"), "--signature", TRANSFER])
    assert proc.returncode == 1
    payload = json.loads(proc.stdout)
    assert payload["error_code"] == "CAST_NOT_INSTALLED"


def test_sig_and_four_byte_commands(tmp_path: Path):
    binary, env = write_fake_cast(
        tmp_path,
        {"sig": {TRANSFER: TRANSFER_SELECTOR}, "4byte": {TRANSFER_SELECTOR: [TRANSFER]}},
    )
    proc = run_cli("sig", ["--cast-binary", str(binary), "--signature", TRANSFER], extra_env=env)
    assert proc.returncode == 0, proc.stdout + proc.stderr
    assert json.loads(proc.stdout)["selector"] == TRANSFER_SELECTOR

    proc = run_cli("4byte", ["--cast-binary", str(binary), "--selector", TRANSFER_SELECTOR], extra_env=env)
    assert proc.returncode == 0, proc.stdout + proc.stderr
    assert json.loads(proc.stdout)["signatures"] == [TRANSFER]

    proc = run_cli("4byte", ["--cast-binary", str(binary), "--selector", "0x1234"], extra_env=env)
    assert proc.returncode == 2


def test_list_files(tmp_path: Path):
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "A.sol").write_text("", encoding="utf-8")
    proc = run_cli("list-files", ["--root", str(tmp_path), "--directory", "src"])
    assert proc.returncode == 0, proc.stdout + proc.stderr
    payload = json.loads(proc.stdout)
    assert payload["files"] == ["A.sol"]

    proc = run_cli("list-files", ["--root", str(tmp_path), "--directory", "nope"])
    assert proc.returncode == 1


def test_annotate_missing_trace_file(tmp_path: Path):
    binary, env = write_fake_cast(tmp_path, {})
    proc = run_cli(
        "annotate",
        ["--cast-binary", str(binary), "--trace-file", str(tmp_path / "absent.txt")],
        extra_env=env,
    )
    assert proc.returncode == 2
    payload = json.loads(proc.stdout)
    assert payload["error_code"] == "INVALID_REQUEST"
    assert "trace file not found" in payload["error_message"]


def test_non_utf8_inputs_are_reported_as_invalid_requests(tmp_path: Path):
    binary, env = write_fake_cast(tmp_path, {})
    raw = tmp_path / "t.bin"
    raw.write_bytes(b"\xff\xfe CALL 0x12345678")

    proc = run_cli("annotate", ["--cast-binary", str(binary), "--trace-file", str(raw)], extra_env=env)
    assert proc.returncode == 2, proc.stdout + proc.stderr
    assert "Traceback" not in proc.stderr
    payload = json.loads(proc.stdout)
    assert payload["ok"] is False
    assert payload["error_code"] == "INVALID_REQUEST"

    proc = run_cli("trace", ["--cast-binary", str(binary), "--request-file", str(raw)], extra_env=env)
    assert proc.returncode == 2, proc.stdout + proc.stderr
    assert json.loads(proc.stdout)["error_code"] == "INVALID_REQUEST"
    assert fake_cast_calls(env) == []


def test_lookup_file_passes_rpc_url_to_directory_lookup(tmp_path: Path):
    sigs = tmp_path / "sigs.txt"
    sigs.write_text(f"{TRANSFER}\n", encoding="utf-8")
    binary, env = write_fake_cast(tmp_path, {"sig": {TRANSFER: TRANSFER_SELECTOR}})
    proc = run_cli(
        "lookup-file",
        [
            "--cast-binary",
            str(binary),
            "--selector",
            TRANSFER_SELECTOR,
            "--signature-file",
            str(sigs),
            "--rpc-url",
            "http://127.0.0.1:1",
        ],
        extra_env=env,
    )
    assert proc.returncode == 0, proc.stdout + proc.stderr
    assert json.loads(proc.stdout)["local"] == [TRANSFER]
    assert ["4byte", TRANSFER_SELECTOR, "--rpc-url", "http://127.0.0.1:1"] in fake_cast_calls(env)
