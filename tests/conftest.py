"""
Pytest configuration and shared fixtures.

Provides sample record sources, field descriptor factories, a loader for
throwaway modules declaring ``@builder`` records, and isolation of the
configuration layer from the developer's environment.
"""

import importlib.util
import sys
import textwrap
from pathlib import Path

import pytest

from recbuilder.core.builder.models import FieldDescriptor, RecordDeclaration, Visibility
from recbuilder.core.config import clear_cache

# ==============================================================================
# Isolation
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep user config, RECBUILDER_* variables and the config cache out of tests."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for name in ("RECBUILDER_BUILDER_SUFFIX", "RECBUILDER_RECORD_PROTOCOL", "RECBUILDER_ANNOTATE"):
        monkeypatch.delenv(name, raising=False)
    clear_cache()
    yield
    clear_cache()


# ==============================================================================
# Declaration Fixtures
# ==============================================================================


def make_field(name: str, declared_type: str, default: str | None = None) -> FieldDescriptor:
    """Build a FieldDescriptor the way the extractor would."""
    return FieldDescriptor(
        name=name,
        declared_type=declared_type,
        visibility=Visibility.from_name(name),
        raw_attributes={} if default is None else {"default": default},
    )


@pytest.fixture
def field_factory():
    """Factory for FieldDescriptor objects."""
    return make_field


@pytest.fixture
def scenario_record():
    """The reference record: one required, one defaulted, one optional field."""
    return RecordDeclaration(
        name="Scenario",
        fields=[
            make_field("req", "str"),
            make_field("count", "int", default="10"),
            make_field("tag", "Optional[str]"),
        ],
    )


SCENARIO_SOURCE = '''\
"""Records for tests."""

from typing import Annotated, Optional

from recbuilder import builder, default


@builder
class Scenario:
    req: str
    count: Annotated[int, default("10")]
    tag: Optional[str]
'''


@pytest.fixture
def scenario_source():
    """Module source declaring the reference record."""
    return SCENARIO_SOURCE


# ==============================================================================
# Module Loading
# ==============================================================================


@pytest.fixture
def load_module(tmp_path):
    """
    Write source to a file and import it as a fresh module.

    Records are generated while the module executes, so a generation error
    surfaces from this call.
    """
    loaded: list[str] = []

    def _load(source: str, name: str = "records") -> object:
        module_name = f"_recbuilder_test_{tmp_path.name}_{name}"
        path = Path(tmp_path) / f"{module_name}.py"
        path.write_text(textwrap.dedent(source))
        spec = importlib.util.spec_from_file_location(module_name, path)
        assert spec is not None and spec.loader is not None
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        loaded.append(module_name)
        spec.loader.exec_module(module)
        return module

    yield _load

    for module_name in loaded:
        sys.modules.pop(module_name, None)
