from __future__ import annotations

import os
from pathlib import Path

import pytest

from pocket_backend.core.errors import RequiredValuesMissingError
from pocket_backend.core.prompts import PromptStore


PROMPTS_FILE = Path(__file__).resolve().parents[2] / "prompts.yaml"


def _write(path: Path, template: str, *, version: int = 1) -> Path:
    indented = "\n".join(f"      {line}" for line in template.splitlines())
    path.write_text(
        f"version: {version}\n"
        "prompts:\n"
        "  prompt_improvement_system:\n"
        "    template: |\n"
        f"{indented}\n",
        encoding="utf-8",
    )
    return path


def test_shipped_catalog_is_valid() -> None:
    store = PromptStore(PROMPTS_FILE)

    entry = store.get("prompt_improvement_system")

    assert entry.placeholders == ["instruction"]
    rendered = store.render("prompt_improvement_system", {"instruction": "Be brief."})
    assert "Be brief." in rendered
    assert "improved_content" in rendered


def test_render_requires_declared_variables(tmp_path: Path) -> None:
    store = PromptStore(_write(tmp_path / "prompts.yaml", "Guidance: {{ instruction }}"))

    assert store.render("prompt_improvement_system", {"instruction": "x"}) == "Guidance: x\n"
    with pytest.raises(RequiredValuesMissingError):
        store.render("prompt_improvement_system", {})


def test_unknown_variables_are_rejected(tmp_path: Path) -> None:
    store = PromptStore(_write(tmp_path / "prompts.yaml", "{{instruction}} {{surprise}}"))

    with pytest.raises(ValueError, match="surprise"):
        store.catalog()


def test_missing_required_prompt_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "prompts.yaml"
    path.write_text("version: 1\nprompts:\n  other:\n    template: hi\n", encoding="utf-8")

    with pytest.raises(ValueError, match="prompt_improvement_system"):
        PromptStore(path).catalog()


def test_unknown_key_raises_key_error() -> None:
    with pytest.raises(KeyError):
        PromptStore(PROMPTS_FILE).get("nope")


def test_catalog_reloads_when_file_changes(tmp_path: Path) -> None:
    path = _write(tmp_path / "prompts.yaml", "First {{instruction}}")
    store = PromptStore(path)
    assert store.catalog().version == 1

    _write(path, "Second {{instruction}}", version=2)
    stat = path.stat()
    os.utime(path, (stat.st_atime, stat.st_mtime + 10))

    assert store.catalog().version == 2
    assert store.get("prompt_improvement_system").template.startswith("Second")
