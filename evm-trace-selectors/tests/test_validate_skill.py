from __future__ import annotations

import subprocess
import sys
from pathlib import Path

from validate_skill import validate_skill


ROOT = Path(__file__).resolve().parents[1]
SCRIPTS = ROOT / "scripts"


def test_validate_skill_repo_skill():
    cmd = [sys.executable, str(SCRIPTS / "validate_skill.py"), str(ROOT)]
    proc = subprocess.run(cmd, capture_output=True, text=True, check=False)
    assert proc.returncode == 0, proc.stdout + proc.stderr
    assert "Valid skill" in proc.stdout


def test_validate_skill_flags_name_mismatch_and_missing_script(tmp_path: Path):
    skill_dir = tmp_path / "other-skill"
    (skill_dir / "scripts").mkdir(parents=True)
    (skill_dir / "SKILL.md").write_text(
        "---\nname: evm-trace-selectors\ndescription: test\nextra: 1\n---\n"
        "Run `python3 scripts/missing_tool.py`.\n",
        encoding="utf-8",
    )
    errors = validate_skill(skill_dir)
    assert "Unexpected fields in frontmatter: extra" in errors
    assert any("must match skill name" in err for err in errors)
    assert "SKILL.md references missing script: scripts/missing_tool.py" in errors


def test_validate_skill_requires_frontmatter(tmp_path: Path):
    skill_dir = tmp_path / "bare"
    skill_dir.mkdir()
    (skill_dir / "SKILL.md").write_text("# no frontmatter\n", encoding="utf-8")
    assert validate_skill(skill_dir) == ["SKILL.md must start with YAML frontmatter (---)"]


def _write_skill(tmp_path: Path, frontmatter: str) -> Path:
    skill_dir = tmp_path / "evm-trace-selectors"
    (skill_dir / "scripts").mkdir(parents=True)
    (skill_dir / "scripts" / "evm_trace.py").write_text("", encoding="utf-8")
    (skill_dir / "SKILL.md").write_text(
        f"---\nname: evm-trace-selectors\ndescription: test\n{frontmatter}---\nRun `scripts/evm_trace.py`.\n",
        encoding="utf-8",
    )
    return skill_dir


def test_validate_skill_rejects_non_string_compatibility(tmp_path: Path):
    skill_dir = _write_skill(tmp_path, "compatibility:\n  - foundry\n")
    assert validate_skill(skill_dir) == ["Field 'compatibility' must be a non-empty string"]


def test_validate_skill_rejects_long_compatibility(tmp_path: Path):
    skill_dir = _write_skill(tmp_path, f"compatibility: {'x' * 501}\n")
    assert validate_skill(skill_dir) == ["Field 'compatibility' exceeds 500 characters (501 chars)"]


def test_validate_skill_checks_entrypoint(tmp_path: Path):
    ok_dir = _write_skill(tmp_path / "ok", "metadata:\n  entrypoint: scripts/evm_trace.py\n")
    assert validate_skill(ok_dir) == []

    bad_dir = _write_skill(tmp_path / "bad", "metadata:\n  entrypoint: scripts/gone.py\n")
    assert validate_skill(bad_dir) == ["metadata.entrypoint does not point at a file: scripts/gone.py"]
