from __future__ import annotations

import json
import sys
from typing import Any, Dict, Optional

import typer

from fraudwatch.config import get_settings
from fraudwatch.data_access import AdminDataAccess
from fraudwatch.demo_data import generate_dataset, seed as seed_dataset
from fraudwatch.errors import ValidationError
from fraudwatch.query.collections import (
    BEHAVIORAL_SESSIONS,
    RISK_SCORES,
    TRANSACTIONS,
    USERS,
)
from fraudwatch.reporter import print_page, print_stats
from fraudwatch.store import InMemoryDocumentStore, build_store
from fraudwatch.utils.logging import configure_logging

app = typer.Typer(help="fraudwatch admin data-access CLI.")


def _access() -> AdminDataAccess:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    return AdminDataAccess(build_store(settings), settings=settings)


def _sort(field: Optional[str], direction: str) -> Optional[Dict[str, str]]:
    return {"field": field, "direction": direction} if field else None


def _show(collection: str, filters: Dict[str, Any], page: int, page_size: int, sort: Optional[Dict[str, str]], as_json: bool) -> None:
    access = _access()
    try:
        response = access.paginate(collection, filters, sort, page, page_size)
    except ValidationError as exc:
        typer.echo(f"Invalid request: {exc}", err=True)
        raise typer.Exit(code=2)
    if as_json:
        typer.echo(json.dumps(response.to_dict(), indent=2))
    else:
        print_page(collection, response)


PAGE = typer.Option(1, "--page", "-p", help="1-based page number.")
PAGE_SIZE = typer.Option(10, "--page-size", "-n", help="Records per page.")
SEARCH = typer.Option(None, "--search", "-q", help="Case-insensitive free-text search.")
SORT_BY = typer.Option(None, "--sort-by", help="Sort field (collection default if omitted).")
SORT_DIR = typer.Option("desc", "--direction", "-d", help="Sort direction: asc or desc.")
AS_JSON = typer.Option(False, "--json", help="Print the raw page payload as JSON.")


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    store = (
        f"postgres {settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name}"
        f" table={settings.db_documents_table}"
        if settings.store_backend == "postgres"
        else f"memory snapshot={settings.memory_store_path or '-'}"
    )
    typer.echo(
        f"STORE={store} | env={settings.app_env} | page_size={settings.default_page_size} "
        f"debounce={settings.search_debounce_ms}ms | indexes={len(settings.index_specs)}"
    )


@app.command()
def seed(
    users: int = typer.Option(20, "--users", "-u", help="Number of demo users."),
    transactions: int = typer.Option(4, "--transactions", help="Transactions per user."),
    sessions: int = typer.Option(3, "--sessions", help="Behavioral sessions per user."),
    seed_value: int = typer.Option(42, "--seed", help="Deterministic RNG seed."),
) -> None:
    """
    Load deterministic demo data through the insert paths.
    """
    access = _access()
    store = access.store
    if isinstance(store, InMemoryDocumentStore):
        if store.snapshot_path is None:
            typer.echo("MEMORY_STORE_PATH is not set; seeded data will not outlive this command.", err=True)
        store.autosave = False
    dataset = generate_dataset(users, transactions, sessions, seed=seed_value)
    counts = seed_dataset(access, dataset)
    if isinstance(store, InMemoryDocumentStore):
        store.save()
    typer.echo("Seeded " + ", ".join(f"{name}={count}" for name, count in counts.items()))


@app.command()
def users(
    page: int = PAGE,
    page_size: int = PAGE_SIZE,
    search: Optional[str] = SEARCH,
    status: Optional[str] = typer.Option(None, "--status", help="User status filter."),
    verification: Optional[str] = typer.Option(None, "--verification", help="verified or unverified."),
    sort_by: Optional[str] = SORT_BY,
    direction: str = SORT_DIR,
    as_json: bool = AS_JSON,
) -> None:
    """
    Browse users.
    """
    filters = {"search": search, "statusFilter": status, "verificationFilter": verification}
    _show(USERS, filters, page, page_size, _sort(sort_by, direction), as_json)


@app.command()
def transactions(
    page: int = PAGE,
    page_size: int = PAGE_SIZE,
    search: Optional[str] = SEARCH,
    status: Optional[str] = typer.Option(None, "--status"),
    type_: Optional[str] = typer.Option(None, "--type"),
    category: Optional[str] = typer.Option(None, "--category"),
    user_id: Optional[str] = typer.Option(None, "--user-id", help="Only transactions sent by this user."),
    sort_by: Optional[str] = SORT_BY,
    direction: str = SORT_DIR,
    as_json: bool = AS_JSON,
) -> None:
    """
    Browse transactions.
    """
    filters = {
        "search": search,
        "status": status,
        "type": type_,
        "category": category,
        "userId": user_id,
    }
    _show(TRANSACTIONS, filters, page, page_size, _sort(sort_by, direction), as_json)


@app.command()
def sessions(
    page: int = PAGE,
    page_size: int = PAGE_SIZE,
    search: Optional[str] = SEARCH,
    behavior: Optional[str] = typer.Option(None, "--behavior", help="motion, touch or typing."),
    user_id: Optional[str] = typer.Option(None, "--user-id"),
    sort_by: Optional[str] = SORT_BY,
    direction: str = SORT_DIR,
    as_json: bool = AS_JSON,
) -> None:
    """
    Browse raw behavioral sessions.
    """
    filters = {"search": search, "behaviorFilter": behavior, "userId": user_id}
    _show(BEHAVIORAL_SESSIONS, filters, page, page_size, _sort(sort_by, direction), as_json)


@app.command("risk-scores")
def risk_scores(
    user_id: str = typer.Argument(..., help="User whose risk scores to list."),
    page: int = PAGE,
    page_size: int = PAGE_SIZE,
    level: Optional[str] = typer.Option(None, "--level", help="low, medium or high."),
    as_json: bool = AS_JSON,
) -> None:
    """
    Browse one user's risk scores, newest first.
    """
    _show(RISK_SCORES, {"userId": user_id, "riskLevel": level}, page, page_size, None, as_json)


@app.command()
def stats(as_json: bool = AS_JSON) -> None:
    """
    Show the dashboard overview.
    """
    overview = _access().get_admin_stats()
    if as_json:
        typer.echo(json.dumps(overview.model_dump(mode="json", by_alias=True), indent=2))
    else:
        print_stats(overview)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
