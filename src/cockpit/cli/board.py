"""
Cockpit CLI - Board inspection commands.

Every command reads a cockpit record (the JSON document the persistence
layer writes) and prints derived information. Nothing is written back.
"""

import json
from pathlib import Path
from typing import Any

import typer
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from cockpit.core.config import load_config
from cockpit.core.links.index import LINKABLE_KINDS
from cockpit.core.status.aggregation import (
    domain_worst_status,
    effective_status,
    status_color,
    status_counts,
)
from cockpit.core.tree.errors import CockpitError
from cockpit.core.tree.models import EntityKind, TileStatus
from cockpit.core.tree.search import (
    Match,
    all_elements,
    all_sub_elements,
    find_elements_by_name,
    find_sub_elements_by_name,
    group_matches,
)
from cockpit.core.tree.store import TreeStore

console = Console()


def _load_store(file: Path) -> TreeStore:
    """
    Load a cockpit record into a store.

    Raises:
        typer.Exit: If the file cannot be read or is not a valid cockpit
    """
    try:
        record = json.loads(file.read_text(encoding="utf-8"))
    except FileNotFoundError:
        console.print(f"[red]Error:[/red] File not found: {file}")
        raise typer.Exit(1)
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Error:[/red] Failed to read {file}: {e}")
        raise typer.Exit(1)

    if not isinstance(record, dict):
        console.print(f"[red]Error:[/red] Not a cockpit object: {file}")
        raise typer.Exit(1)

    try:
        config = load_config()
    except PydanticValidationError as e:
        console.print(f"[red]Error:[/red] Invalid configuration: {escape(str(e))}")
        raise typer.Exit(1)

    try:
        return TreeStore.from_record(record, config=config)
    except CockpitError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)


def _badge(status: TileStatus) -> str:
    color = status_color(status)
    return f"[{color.hex}]{color.label}[/]"


def _match_dict(match: Match) -> dict[str, Any]:
    return {
        "id": match.id,
        "name": match.name,
        "status": match.status.value,
        "linkedGroupId": match.linked_group_id,
        "path": match.path,
    }


def show(
    file: Path = typer.Argument(..., help="Cockpit record (JSON)"),
) -> None:
    """
    Show the cockpit tree with effective statuses.

    Elements whose status is inherited show the derived status followed by
    the stored one. Linked elements show the size of their group.

    Examples:
        cockpit show board.json
    """
    store = _load_store(file)
    cockpit = store.cockpit

    tree = Tree(f"[bold]{escape(cockpit.name)}[/bold]")
    for domain in cockpit.domains:
        domain_node = tree.add(
            f"[bold]{escape(domain.name)}[/bold] {_badge(domain_worst_status(domain, store))}"
        )
        for category in domain.categories:
            category_node = domain_node.add(escape(category.name))
            for element in category.elements:
                label = f"{escape(element.name)} {_badge(effective_status(element, store))}"
                if element.status.is_sentinel:
                    label += f" [dim]({element.status.value})[/dim]"
                if element.linked_group_id:
                    size = store.links.group_size(EntityKind.ELEMENT, element.linked_group_id)
                    label += f" [cyan]linked x{size}[/cyan]"
                element_node = category_node.add(label)
                for sub_category in element.sub_categories:
                    sub_category_node = element_node.add(f"[italic]{escape(sub_category.name)}[/]")
                    for sub_element in sub_category.sub_elements:
                        sub_label = f"{escape(sub_element.name)} {_badge(sub_element.status)}"
                        if sub_element.linked_group_id:
                            sub_label += " [cyan]linked[/cyan]"
                        sub_category_node.add(sub_label)

    console.print(tree)


def find(
    file: Path = typer.Argument(..., help="Cockpit record (JSON)"),
    name: str = typer.Argument(..., help="Exact name to look up"),
    sub: bool = typer.Option(
        False,
        "--sub",
        "-s",
        help="Look up sub-elements instead of elements",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON",
    ),
) -> None:
    """
    Find entities with a given name, grouped by linked group.

    This is the list an editor offers when a new entity is named like
    existing ones: link to one of these groups, or stay independent.

    Examples:
        cockpit find board.json "Pump 1"
        cockpit find board.json Sensor1 --sub --json
    """
    store = _load_store(file)
    matches = find_sub_elements_by_name(store, name) if sub else find_elements_by_name(store, name)
    groups = group_matches(matches)
    kind = "sub-element" if sub else "element"

    if json_output:
        output = [
            {
                "key": group.key,
                "linkedGroupId": group.linked_group_id,
                "size": group.size,
                "matches": [_match_dict(m) for m in group.matches],
            }
            for group in groups
        ]
        typer.echo(json.dumps(output, indent=2))
        return

    if not groups:
        console.print(f"[yellow]No {kind} named '{escape(name)}'[/yellow]")
        return

    table = Table(title=f"{len(matches)} {kind}(s) named '{escape(name)}'")
    table.add_column("Group", style="cyan")
    table.add_column("Size", justify="right")
    table.add_column("Path")
    table.add_column("ID", style="dim")
    table.add_column("Status")
    for group in groups:
        label = group.linked_group_id or "(independent)"
        for i, match in enumerate(group.matches):
            table.add_row(
                label if i == 0 else "",
                str(group.size) if i == 0 else "",
                escape(match.path),
                match.id,
                _badge(match.status),
            )
    console.print(table)


def summary(
    file: Path = typer.Argument(..., help="Cockpit record (JSON)"),
) -> None:
    """
    Show the worst status and element counts of every domain.

    Examples:
        cockpit summary board.json
    """
    store = _load_store(file)

    table = Table(title=escape(store.cockpit.name))
    table.add_column("Domain", style="bold")
    table.add_column("Worst status")
    table.add_column("Elements", justify="right")
    table.add_column("By status")
    for domain in store.cockpit.domains:
        elements = [e for category in domain.categories for e in category.elements]
        counts = status_counts(elements, store)
        table.add_row(
            escape(domain.name),
            _badge(domain_worst_status(domain, store)),
            str(len(elements)),
            ", ".join(f"{_badge(status)} {count}" for status, count in counts),
        )
    console.print(table)


def links(
    file: Path = typer.Argument(..., help="Cockpit record (JSON)"),
) -> None:
    """
    List linked groups and where their members live.

    Examples:
        cockpit links board.json
    """
    store = _load_store(file)
    located: dict[EntityKind, dict[str, Match]] = {
        EntityKind.ELEMENT: {m.id: m for m in all_elements(store)},
        EntityKind.SUB_ELEMENT: {m.id: m for m in all_sub_elements(store)},
    }

    table = Table(title="Linked groups")
    table.add_column("Kind")
    table.add_column("Group", style="cyan")
    table.add_column("Members")
    count = 0
    for kind in LINKABLE_KINDS:
        for group_id, member_ids in store.links.groups(kind):
            members = [located[kind][mid] for mid in sorted(member_ids) if mid in located[kind]]
            paths = "\n".join(f"{escape(m.name)} ({escape(m.path)})" for m in members)
            table.add_row(kind.value.replace("_", "-"), group_id, paths)
            count += 1

    if count == 0:
        console.print("[yellow]No linked groups[/yellow]")
        return
    console.print(table)
