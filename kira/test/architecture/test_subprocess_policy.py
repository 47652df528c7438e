from __future__ import annotations

from kira.test.architecture._gate import require_arch_checks_enabled
from kira.test.architecture._utils import (
    iter_source_files,
    kira_root,
    matches_prefix,
    parse_imports,
)


def test_subprocess_is_only_used_by_the_process_module() -> None:
    require_arch_checks_enabled()

    root = kira_root()
    allowlist = {"platform/process.py"}

    offenders: list[str] = []
    for file_path in iter_source_files():
        rel = file_path.relative_to(root).as_posix()
        if rel in allowlist:
            continue
        for item in parse_imports(file_path):
            if matches_prefix(item.module, "subprocess"):
                offenders.append(f"{rel}:{item.line}: subprocess import outside allowlist")

    assert not offenders, "Subprocess policy violations:\n" + "\n".join(offenders)
