#!/usr/bin/env python3
"""
Prismic Migration CLI

Runs the migration wizard one stage per command:

    fetch-assets -> download-assets -> upload-assets -> migrate-documents

check-languages and build-mapping can be run at any point. Each stage
prints its outcome as JSON on stdout.
"""

import json
import sys
from functools import wraps
from typing import Optional

import click
import requests

import prismic_rest
from config import STATE_DIR, STATE_FILE
from logging_config import logger
from secrets_manager import secrets_manager, ConfigurationError
from session_manager import SessionManager
from migration.credentials import TokenProvider
from migration.database import MigrationDatabase
from migration.orchestrator import (
    MigrationContext,
    fetch_assets_stage,
    download_assets_stage,
    upload_assets_stage,
    build_mapping_stage,
    migrate_documents_stage,
    check_languages_stage,
)
from migration.workflow import JsonStateStore, enabled_steps, reset


class MigrationCLI:
    def __init__(self):
        self.env_file: Optional[str] = None
        self._context: Optional[MigrationContext] = None

    @property
    def context(self) -> MigrationContext:
        """Build the stage context on first use"""
        if self._context is None:
            settings = secrets_manager.get_from_environment(self.env_file)
            self._context = MigrationContext(
                settings=settings,
                tokens=TokenProvider(settings, prismic_rest.login, SessionManager()),
                db=MigrationDatabase(),
                state_store=JsonStateStore(STATE_DIR / STATE_FILE),
                api=prismic_rest,
            )
        return self._context


cli = MigrationCLI()


def echo_json(payload):
    click.echo(json.dumps(payload, indent=2, ensure_ascii=False))


def stage_command(func):
    """Report configuration and request errors as failed exits"""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ConfigurationError as e:
            click.echo(f"❌ {e}", err=True)
            sys.exit(2)
        except prismic_rest.AuthenticationError as e:
            click.echo(f"❌ {e}", err=True)
            sys.exit(1)
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            logger.log_error(e, {"command": func.__name__, "status": status})
            click.echo(f"❌ Request failed ({status}): {e}", err=True)
            sys.exit(1)
        except requests.RequestException as e:
            logger.log_error(e, {"command": func.__name__})
            click.echo(f"❌ Request failed: {e}", err=True)
            sys.exit(1)

    return wrapper


@click.group()
@click.option("--env-file", help="Environment file to load (defaults to .env.local or .env)")
def main(env_file: Optional[str]):
    """Prismic Migration CLI - copy assets and documents between repositories"""
    cli.env_file = env_file


@main.command("fetch-assets")
@stage_command
def fetch_assets():
    """1. Fetch the source asset list and check what is already done"""
    result = fetch_assets_stage(cli.context)
    items = result["assets"].get("items", []) if isinstance(result["assets"], dict) else []
    click.echo(f"✅ Fetched {len(items)} assets", err=True)
    if result["allExist"]:
        click.echo("💡 All assets are already downloaded", err=True)
    if result["allUploaded"]:
        click.echo("💡 All assets are already uploaded and ready for document migration", err=True)
    echo_json(result)


@main.command("download-assets")
@stage_command
def download_assets():
    """2. Download source assets into the local cache"""
    result = download_assets_stage(cli.context)
    click.echo(
        f"✅ Downloaded {result['completed']}, skipped {result['skipped']}, failed {result['failures']}",
        err=True,
    )
    echo_json(result)


@main.command("upload-assets")
@stage_command
def upload_assets():
    """3. Upload cached assets to the destination repository"""
    result = upload_assets_stage(cli.context)
    click.echo(
        f"✅ Uploaded {result['completed']}, already present {result['skipped']}, failed {result['failures']}",
        err=True,
    )
    echo_json(result)


@main.command("build-mapping")
@stage_command
def build_mapping():
    """Match source and destination assets by filename and store the mapping"""
    result = build_mapping_stage(cli.context)
    stats = result.stats
    click.echo(
        f"✅ Matched {stats.matched}/{stats.total_source} source assets ({stats.ambiguous} ambiguous)",
        err=True,
    )
    echo_json(result.to_dict())


@main.command("migrate-documents")
@click.option("--skip-schema", is_flag=True, help="Do not copy slices and custom types first")
@stage_command
def migrate_documents(skip_schema: bool):
    """4. Migrate documents with asset ids rewritten"""
    result = migrate_documents_stage(cli.context, copy_schema=not skip_schema)
    click.echo(
        f"✅ Migrated {result['totalDocuments'] - result['failures']}/{result['totalDocuments']} documents",
        err=True,
    )
    if result["missingLanguages"]:
        click.echo(
            f"⚠️  Missing destination languages: {', '.join(result['missingLanguages'])}",
            err=True,
        )
    echo_json(result)


@main.command("check-languages")
@stage_command
def check_languages():
    """Compare document languages with the destination's languages"""
    report = check_languages_stage(cli.context)
    for line in report.instructions:
        click.echo(line, err=True)
    echo_json(report.to_dict())


@main.command()
def status():
    """Show wizard progress, configuration and stored results"""
    ctx = cli.context
    state = ctx.state_store.load()
    echo_json(
        {
            "state": state.to_dict(),
            "enabled": enabled_steps(state),
            "settings": ctx.settings.redacted(),
            "sessions": ctx.tokens.sessions.get_session_info() if ctx.tokens.sessions else {},
            "database": ctx.db.get_stats(),
            "failedDocuments": [
                {"id": row["source_id"], "title": row["title"], "reason": row["reason"]}
                for row in ctx.db.get_documents(status="failed")
            ],
        }
    )


@main.command("reset")
@click.option("--clear-db", is_flag=True, help="Also clear stored assets, mappings and documents")
@click.option("--clear-tokens", is_flag=True, help="Also clear cached login tokens")
def reset_command(clear_db: bool, clear_tokens: bool):
    """Reset wizard progress"""
    ctx = cli.context
    ctx.state_store.save(reset())
    if clear_db:
        ctx.db.clear_all()
    if clear_tokens and ctx.tokens.sessions:
        ctx.tokens.sessions.clear_session()
    click.echo("🧹 Wizard state reset")


if __name__ == "__main__":
    main()
