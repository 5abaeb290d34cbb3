"""
Kernel boundary and invariants contract.

1. sales_kernel/** may NOT import sales_config.  Configuration flows into
   the kernel as plain arguments (see sales_config.bridges), never by import.

2. Only the services layer and the db wiring may reach the enforcers;
   models and domain stay free of services imports.

3. The invariants declaration is complete and the enforcers' errors name
   the invariant they protect.

These tests read source code via AST.
"""

import ast
from pathlib import Path

from sales_kernel import exceptions
from sales_kernel.invariants import (
    ALL_SALES_INVARIANTS,
    FORBIDDEN_KERNEL_IMPORTS,
    SalesInvariant,
)

REPO_ROOT = Path(__file__).resolve().parents[2]
KERNEL_ROOT = REPO_ROOT / "sales_kernel"


def _python_files(root: Path) -> list[Path]:
    return sorted(root.rglob("*.py"))


def _extract_imports(filepath: Path) -> list[tuple[int, str]]:
    """Extract (line_number, module_string) for all imports in a file."""
    tree = ast.parse(filepath.read_text(), filename=str(filepath))

    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom):
            if node.module:
                results.append((node.lineno, node.module))
    return results


def _violations(files: list[Path], prefixes: tuple[str, ...]) -> list[str]:
    found = []
    for filepath in files:
        for lineno, module in _extract_imports(filepath):
            for prefix in prefixes:
                if module == prefix or module.startswith(f"{prefix}."):
                    found.append(f"  {filepath.relative_to(REPO_ROOT)}:{lineno} imports '{module}'")
    return found


class TestKernelNoUpwardDependencies:
    def test_kernel_does_not_import_config(self):
        violations = _violations(_python_files(KERNEL_ROOT), FORBIDDEN_KERNEL_IMPORTS)

        assert not violations, (
            "Kernel boundary violation: sales_kernel/** must not import "
            "sales_config:\n" + "\n".join(violations)
        )

    def test_kernel_files_found(self):
        assert len(_python_files(KERNEL_ROOT)) > 10


class TestLayering:
    def test_models_and_domain_do_not_import_services(self):
        files = _python_files(KERNEL_ROOT / "models") + _python_files(KERNEL_ROOT / "domain")
        violations = _violations(files, ("sales_kernel.services",))

        assert not violations, "\n".join(violations)

    def test_domain_is_pure(self):
        """Domain values do no I/O: no SQLAlchemy, no db layer."""
        violations = _violations(
            _python_files(KERNEL_ROOT / "domain"),
            ("sqlalchemy", "sales_kernel.db", "sales_kernel.models"),
        )

        assert not violations, "\n".join(violations)


class TestInvariantsDeclaration:
    def test_all_invariants_listed(self):
        assert set(ALL_SALES_INVARIANTS) == set(SalesInvariant)
        assert len(ALL_SALES_INVARIANTS) == 4

    def test_enforcer_errors_name_their_invariant(self):
        carried = {
            cls.invariant
            for cls in vars(exceptions).values()
            if isinstance(cls, type)
            and issubclass(cls, exceptions.SalesKernelError)
            and cls.invariant is not None
        }
        assert carried <= set(SalesInvariant)
        assert {
            SalesInvariant.STOCK_ADMISSION,
            SalesInvariant.TITLE_AUDIT,
            SalesInvariant.AUDIT_APPEND_ONLY,
        } <= carried
