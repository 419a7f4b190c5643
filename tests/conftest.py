"""
Pytest configuration and shared fixtures.

Provides deterministic stores, a sample cockpit record with duplicate names
and linked groups, and isolation from the user's config and env files.
"""

import itertools
import json
from pathlib import Path
from typing import Any, Callable

import pytest

from cockpit.core.config import clear_cache
from cockpit.core.config.models import CockpitConfig
from cockpit.core.tree.store import TreeStore

# ==============================================================================
# Isolation
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """
    Keep tests away from real config and env files.

    Points XDG_CONFIG_HOME at an empty directory, runs from an empty project
    directory and clears the config cache before and after each test.
    """
    xdg = tmp_path / "xdg"
    xdg.mkdir()
    project = tmp_path / "cwd"
    project.mkdir()
    monkeypatch.setenv("XDG_CONFIG_HOME", str(xdg))
    monkeypatch.chdir(project)
    for var in ("COCKPIT_SEVERITY_PRESET", "COCKPIT_SYNC_NAME", "COCKPIT_DEFAULT_STATUS"):
        # Set then delete so teardown also removes values loaded from .env files
        monkeypatch.setenv(var, "")
        monkeypatch.delenv(var)
    clear_cache()
    yield
    clear_cache()


# ==============================================================================
# Store Fixtures
# ==============================================================================


@pytest.fixture
def id_factory() -> Callable[[], str]:
    """Provide an id factory yielding id-1, id-2, ..."""
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


@pytest.fixture
def store(id_factory) -> TreeStore:
    """Provide an empty store with deterministic ids."""
    return TreeStore(id_factory=id_factory)


@pytest.fixture
def sample_record() -> dict[str, Any]:
    """
    Provide a cockpit record as the persistence layer writes it.

    Layout:
        Domain A
            Pumps: Pump 1 (ok), Pump 2 (herite; Temp: Sensor1 mineur, Sensor2 ok)
            Valves: (empty)
        Domain B
            Spare: Pump 1 (critique), Mirror (herite_domaine -> Domain A)
    """
    return {
        "id": "cockpit-1",
        "name": "Plant",
        "zones": [{"id": "zone-north", "name": "North"}],
        "domains": [
            {
                "id": "dom-a",
                "name": "Domain A",
                "templateType": "standard",
                "categories": [
                    {
                        "id": "cat-pumps",
                        "name": "Pumps",
                        "orientation": "horizontal",
                        "elements": [
                            {
                                "id": "el-p1",
                                "name": "Pump 1",
                                "status": "ok",
                                "zone": "North",
                                "subCategories": [],
                            },
                            {
                                "id": "el-p2",
                                "name": "Pump 2",
                                "status": "herite",
                                "subCategories": [
                                    {
                                        "id": "sc-temp",
                                        "name": "Temp",
                                        "subElements": [
                                            {"id": "se-s1", "name": "Sensor1", "status": "mineur"},
                                            {"id": "se-s2", "name": "Sensor2", "status": "ok"},
                                        ],
                                    }
                                ],
                            },
                        ],
                    },
                    {"id": "cat-valves", "name": "Valves", "elements": None},
                ],
            },
            {
                "id": "dom-b",
                "name": "Domain B",
                "categories": [
                    {
                        "id": "cat-spare",
                        "name": "Spare",
                        "elements": [
                            {"id": "el-p1b", "name": "Pump 1", "status": "critique"},
                            {
                                "id": "el-mirror",
                                "name": "Mirror",
                                "status": "herite_domaine",
                                "inheritFromDomainId": "dom-a",
                            },
                        ],
                    }
                ],
            },
        ],
    }


@pytest.fixture
def sample_store(sample_record, id_factory) -> TreeStore:
    """Provide a store loaded from the sample record."""
    return TreeStore.from_record(sample_record, id_factory=id_factory)


@pytest.fixture
def sync_name_store(sample_record, id_factory) -> TreeStore:
    """Provide the sample store with name synchronization turned on."""
    config = CockpitConfig.model_validate({"links": {"sync_name": True}})
    return TreeStore.from_record(sample_record, config=config, id_factory=id_factory)


@pytest.fixture
def record_file(tmp_path, sample_record) -> Path:
    """Write the sample record to a JSON file."""
    path = tmp_path / "board.json"
    path.write_text(json.dumps(sample_record, indent=2))
    return path
