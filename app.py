import json
from pathlib import Path
from typing import Optional

import click
from flask import Flask, current_app
from flask.cli import with_appcontext

from agent.match_agent import MatchAgent
from config import Config, MatchSettings
from database import db
from errors import MatchingError, PersistenceError
from models import MatchStatus
from services import ITEM_TYPES, MatchService
from services.lifecycle import MatchLifecycle


def _ensure_sqlite_dir(app: Flask, database_uri: str) -> None:
    if not database_uri.startswith("sqlite:///") or database_uri == "sqlite:///:memory:":
        return
    raw_path = database_uri.replace("sqlite:///", "", 1)
    db_path = Path(raw_path)
    if not db_path.is_absolute():
        db_path = Path(app.root_path) / db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)


def create_app(config_object=Config) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(app.config["LOG_LEVEL"])

    _ensure_sqlite_dir(app, app.config["SQLALCHEMY_DATABASE_URI"])
    db.init_app(app)
    with app.app_context():
        db.create_all()

    match_service = MatchService(db.session)
    agent = MatchAgent(match_service, MatchSettings.from_config(app.config))
    app.extensions["matching"] = MatchLifecycle(match_service, agent)

    app.cli.add_command(auto_match_command)
    app.cli.add_command(match_lost_command)
    app.cli.add_command(match_found_command)
    app.cli.add_command(saved_matches_command)
    app.cli.add_command(set_match_status_command)
    app.cli.add_command(my_matches_command)
    return app


def _lifecycle() -> MatchLifecycle:
    return current_app.extensions["matching"]


def _echo_json(payload) -> None:
    click.echo(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


def _fail(exc: MatchingError) -> None:
    click.echo(f"Error: {exc.description}", err=True)
    raise SystemExit(1)


@click.command("auto-match")
@with_appcontext
def auto_match_command() -> None:
    """Refresh suggestions for every approved lost item."""
    _echo_json(_lifecycle().run_auto_matching())


def _show_candidates(finder, item_id: int) -> None:
    try:
        candidates = finder(item_id)
    except PersistenceError as exc:
        if exc.partial_results:
            _echo_json([c.to_dict() for c in exc.partial_results])
        _fail(exc)
    except MatchingError as exc:
        _fail(exc)
    else:
        _echo_json([c.to_dict() for c in candidates])


@click.command("match-lost")
@click.argument("lost_id", type=int)
@with_appcontext
def match_lost_command(lost_id: int) -> None:
    """Score found items against a lost item and save the top suggestions."""
    _show_candidates(_lifecycle().matches_for_lost, lost_id)


@click.command("match-found")
@click.argument("found_id", type=int)
@with_appcontext
def match_found_command(found_id: int) -> None:
    """Score lost items against a found item and save the top suggestions."""
    _show_candidates(_lifecycle().matches_for_found, found_id)


@click.command("saved-matches")
@click.argument("item_type", type=click.Choice(ITEM_TYPES))
@click.argument("item_id", type=int)
@click.option("--status", type=click.Choice(MatchStatus.ALL), default=None)
@with_appcontext
def saved_matches_command(item_type: str, item_id: int, status: Optional[str]) -> None:
    try:
        matches = _lifecycle().saved_matches(item_type, item_id, status)
    except MatchingError as exc:
        _fail(exc)
    else:
        _echo_json([m.to_dict() for m in matches])


@click.command("set-match-status")
@click.argument("match_id", type=int)
@click.argument("status", type=click.Choice([MatchStatus.CONFIRMED, MatchStatus.DISMISSED]))
@click.option("--user", "user_id", type=int, required=True, help="Id of the acting item owner.")
@with_appcontext
def set_match_status_command(match_id: int, status: str, user_id: int) -> None:
    try:
        match = _lifecycle().set_match_status(match_id, status, user_id)
    except MatchingError as exc:
        _fail(exc)
    else:
        _echo_json(match.to_dict())


@click.command("my-matches")
@click.option("--user", "user_id", type=int, required=True, help="Id of the lost-item owner.")
@with_appcontext
def my_matches_command(user_id: int) -> None:
    """List open suggestions on the user's lost items."""
    try:
        matches = _lifecycle().suggested_for_owner(user_id)
    except MatchingError as exc:
        _fail(exc)
    else:
        _echo_json([m.to_dict() for m in matches])
