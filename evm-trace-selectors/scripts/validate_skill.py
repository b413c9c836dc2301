#!/usr/bin/env python3
"""Check evm-trace-selectors' SKILL.md against the skill layout it documents.

Beyond frontmatter shape, every ``scripts/*.py`` the body mentions and the
declared ``metadata.entrypoint`` must exist, so the documented commands stay
runnable.
"""

from __future__ import annotations

import argparse
import json
import re
from pathlib import Path
from typing import Any

import yaml


ALLOWED_FIELDS = {"name", "description", "license", "compatibility", "metadata", "allowed-tools"}
REQUIRED_FIELDS = ("name", "description")
# Optional or required free-text fields and their character limits.
TEXT_LIMITS = {"description": 1024, "compatibility": 500}
NAME_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
NAME_LIMIT = 64
SCRIPT_REF_RE = re.compile(r"scripts/([A-Za-z0-9_]+\.py)")


def split_frontmatter(content: str) -> tuple[dict[str, Any], str]:
    if not content.startswith("---"):
        raise ValueError("SKILL.md must start with YAML frontmatter (---)")
    _, sep, rest = content.partition("---")
    header, sep, body = rest.partition("\n---")
    if not sep:
        raise ValueError("SKILL.md frontmatter not properly closed with ---")
    parsed = yaml.safe_load(header)
    if not isinstance(parsed, dict):
        raise ValueError("SKILL.md frontmatter must be a YAML mapping")
    return parsed, body.lstrip("-").strip()


def check_name(name: Any, skill_dir: Path) -> list[str]:
    if not isinstance(name, str) or not name.strip():
        return ["Field 'name' must be a non-empty string"]
    name = name.strip()
    errors: list[str] = []
    if len(name) > NAME_LIMIT:
        errors.append(f"Skill name exceeds {NAME_LIMIT} characters ({len(name)} chars)")
    if not NAME_RE.fullmatch(name):
        errors.append("Skill name must be lowercase words joined by single hyphens")
    if skill_dir.name != name:
        errors.append(f"Directory name '{skill_dir.name}' must match skill name '{name}'")
    return errors


def check_text_fields(frontmatter: dict[str, Any]) -> list[str]:
    errors: list[str] = []
    for field, limit in TEXT_LIMITS.items():
        if field not in frontmatter:
            continue
        value = frontmatter[field]
        if not isinstance(value, str) or not value.strip():
            errors.append(f"Field '{field}' must be a non-empty string")
        elif len(value) > limit:
            errors.append(f"Field '{field}' exceeds {limit} characters ({len(value)} chars)")
    return errors


def check_scripts(frontmatter: dict[str, Any], body: str, skill_dir: Path) -> list[str]:
    errors: list[str] = []
    meta = frontmatter.get("metadata", {})
    if not isinstance(meta, dict):
        return ["Field 'metadata' must be a mapping"]

    entrypoint = meta.get("entrypoint")
    if entrypoint is not None:
        if not isinstance(entrypoint, str) or not (skill_dir / entrypoint).is_file():
            errors.append(f"metadata.entrypoint does not point at a file: {entrypoint}")

    for script in sorted(set(SCRIPT_REF_RE.findall(body))):
        if not (skill_dir / "scripts" / script).is_file():
            errors.append(f"SKILL.md references missing script: scripts/{script}")
    return errors


def validate_skill(skill_path: Path) -> list[str]:
    skill_path = skill_path.resolve()
    skill_dir = skill_path.parent if skill_path.is_file() else skill_path
    skill_md = skill_dir / "SKILL.md"
    if not skill_md.is_file():
        return [f"Missing required file: SKILL.md in {skill_dir}"]

    try:
        frontmatter, body = split_frontmatter(skill_md.read_text(encoding="utf-8"))
    except (ValueError, yaml.YAMLError) as exc:
        return [str(exc)]

    errors: list[str] = []
    extra = set(frontmatter) - ALLOWED_FIELDS
    if extra:
        errors.append(f"Unexpected fields in frontmatter: {', '.join(sorted(extra))}")
    errors.extend(
        f"Missing required field in frontmatter: {field}" for field in REQUIRED_FIELDS if field not in frontmatter
    )
    if "name" in frontmatter:
        errors.extend(check_name(frontmatter["name"], skill_dir))
    errors.extend(check_text_fields(frontmatter))
    errors.extend(check_scripts(frontmatter, body, skill_dir))
    return errors


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("skill_path", type=Path, help="skill directory or SKILL.md path")
    parser.add_argument("--json", action="store_true", help="emit machine-readable output")
    args = parser.parse_args()

    errors = validate_skill(args.skill_path)
    if args.json:
        print(json.dumps({"ok": not errors, "errors": errors}, indent=2))
    elif errors:
        print("Validation failed:")
        for err in errors:
            print(f"- {err}")
    else:
        print(f"Valid skill: {args.skill_path}")
    return 0 if not errors else 1


if __name__ == "__main__":
    raise SystemExit(main())
