# budget_tracker/cli.py
import json
from dataclasses import replace
from datetime import date
from urllib.error import URLError

import click
from dotenv import load_dotenv

from budget_tracker import view
from budget_tracker.client import ApiClient, ApiError, LocalBackend
from budget_tracker.config import load_config, update_config
from budget_tracker.core.models import TRANSACTION_TYPES
from budget_tracker.database import NotFoundError, ValidationError
from budget_tracker.importer import ImportAborted, import_file
from budget_tracker.utils import today_iso
from budget_tracker.web import configure_logging, serve

_HANDLED = (ValidationError, NotFoundError, ApiError, ImportAborted, URLError)

remote_option = click.option(
    '--remote', is_flag=True, default=False,
    help='Talk to the running API at api_url instead of the data file'
)


def _backend(ctx, remote=False):
    cfg = ctx.obj['config']
    if remote:
        return ApiClient(base_url=str(cfg['api_url']), timeout=float(cfg['client_timeout']))
    return LocalBackend(db_path=str(cfg['data_file']), config=cfg)


def _run(fn, *args, **kwargs):
    try:
        return fn(*args, **kwargs)
    except _HANDLED as e:
        raise click.ClickException(str(e))


def _money(cfg, amount):
    return f"{cfg['currency']} {amount:,.2f}"


def _echo_rows(rows):
    for tx in rows:
        click.echo(
            f"{tx['id']}  {tx['date']}  {tx['type']:<7}  {tx['category']:<12}  "
            f"{float(tx['amount']):>12.2f}  {tx.get('notes') or ''}"
        )


@click.group()
@click.option(
    '--config', 'config_path',
    default='config.yaml',
    type=click.Path(dir_okay=False),
    help='Path to config.yaml (defaults are used if it does not exist)'
)
@click.option(
    '--env-file', 'env_file',
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help='Optional .env file with PORT / BUDGET_TRACKER_* overrides'
)
@click.option(
    '--data-file', 'data_file',
    default=None,
    type=click.Path(dir_okay=False),
    help='JSON data file (overrides config)'
)
@click.pass_context
def main(ctx, config_path, env_file, data_file):
    """
    Record income and expense transactions in a JSON data file, serve them
    over a small HTTP API, and import/export them as CSV or JSON.
    """
    if env_file:
        load_dotenv(env_file)
    cfg = load_config(config_path)
    if data_file:
        cfg['data_file'] = data_file
    ctx.obj = {'config': cfg, 'config_path': config_path}


@main.command(name='serve')
@click.option('--host', default=None, help='Host to bind (default from config)')
@click.option('--port', default=None, type=int, help='Port to bind (default from config)')
@click.pass_context
def serve_cmd(ctx, host, port):
    """Run the transaction API server."""
    configure_logging()
    serve(ctx.obj['config'], host, port)


@main.command(name='list')
@click.option('--category', default=None, help='Exact category (case-insensitive)')
@click.option('--min', 'min_amount', default=None, type=float, help='Minimum signed amount')
@click.option('--max', 'max_amount', default=None, type=float, help='Maximum signed amount')
@click.option('--sort-by', default=None, help='Field to sort by')
@click.option('--order', default='asc', type=click.Choice(['asc', 'desc']))
@remote_option
@click.pass_context
def list_cmd(ctx, category, min_amount, max_amount, sort_by, order, remote):
    """List stored transactions."""
    rows = _run(
        _backend(ctx, remote).list_transactions,
        category=category, min_amount=min_amount, max_amount=max_amount,
        sort_by=sort_by, sort_dir=order,
    )
    _echo_rows(rows)
    click.echo(f"{len(rows)} transaction(s).")


@main.command()
@click.option('--date', 'date_', default=None, help='Transaction date (default: today)')
@click.option('--type', 'txn_type', default='expense', type=click.Choice(TRANSACTION_TYPES))
@click.option('--category', default='Other')
@click.option('--amount', required=True, type=float)
@click.option('--notes', default='')
@click.option('--recurring', is_flag=True, default=False)
@remote_option
@click.pass_context
def add(ctx, date_, txn_type, category, amount, notes, recurring, remote):
    """Add a transaction."""
    tx = _run(_backend(ctx, remote).create_transaction, {
        'date': date_ or today_iso(),
        'type': txn_type,
        'category': category,
        'amount': amount,
        'notes': notes,
        'recurring': recurring,
    })
    click.echo(f"Added {tx['id']}.")


@main.command()
@click.argument('txn_id')
@click.option('--date', 'date_', default=None)
@click.option('--type', 'txn_type', default=None, type=click.Choice(TRANSACTION_TYPES))
@click.option('--category', default=None)
@click.option('--amount', default=None, type=float)
@click.option('--notes', default=None)
@remote_option
@click.pass_context
def update(ctx, txn_id, date_, txn_type, category, amount, notes, remote):
    """Update fields of an existing transaction."""
    payload = {
        'date': date_, 'type': txn_type, 'category': category,
        'amount': amount, 'notes': notes,
    }
    tx = _run(
        _backend(ctx, remote).update_transaction,
        txn_id, {k: v for k, v in payload.items() if v is not None},
    )
    click.echo(f"Updated {tx['id']}: {tx['type']} {tx['category']} {tx['amount']:.2f}")


@main.command()
@click.argument('txn_id')
@remote_option
@click.pass_context
def delete(ctx, txn_id, remote):
    """Delete a transaction (no error if it does not exist)."""
    _run(_backend(ctx, remote).delete_transaction, txn_id)
    click.echo(f"Deleted {txn_id}.")


@main.command()
@click.option('--yes', is_flag=True, default=False, help='Do not ask for confirmation')
@remote_option
@click.pass_context
def clear(ctx, yes, remote):
    """Delete every transaction."""
    if not yes:
        click.confirm('Delete ALL transactions?', abort=True)
    _run(_backend(ctx, remote).clear)
    click.echo("Cleared all transactions.")


@main.command()
@remote_option
@click.pass_context
def summary(ctx, remote):
    """Show income, expense, balance and this month's goal progress."""
    cfg = ctx.obj['config']
    backend = _backend(ctx, remote)
    totals = _run(backend.summary)
    click.echo(f"Income:   {_money(cfg, totals['income'])}")
    click.echo(f"Expenses: {_money(cfg, abs(totals['expense']))}")
    click.echo(f"Balance:  {_money(cfg, totals['balance'])}")

    target = float(cfg.get('monthly_goal') or 0)
    if target:
        rows = view.normalize(_run(backend.list_transactions))
        month = date.today().strftime('%Y-%m')
        spent = view.monthly_expense(rows, month)
        pct = view.goal_progress(spent, target)
        click.echo(f"Goal:     {_money(cfg, spent)} of {_money(cfg, target)} ({pct:.1f}%) in {month}")


@main.command()
@click.argument('amount', type=click.FloatRange(min=0))
@click.pass_context
def goal(ctx, amount):
    """Set the monthly spending goal in the config file (0 turns it off)."""
    value = int(amount) if amount.is_integer() else amount
    cfg = update_config(ctx.obj['config_path'], monthly_goal=value)
    if value:
        click.echo(f"Monthly goal set to {_money(cfg, value)} in {ctx.obj['config_path']}.")
    else:
        click.echo(f"Monthly goal cleared in {ctx.obj['config_path']}.")


@main.command()
@click.option('--format', 'fmt', default='csv', type=click.Choice(['csv', 'json']))
@click.option('--output', 'output_path', default=None, type=click.Path(dir_okay=False),
              help='Write to this file instead of stdout')
@remote_option
@click.pass_context
def export(ctx, fmt, output_path, remote):
    """Export all transactions as CSV or JSON."""
    text = _run(_backend(ctx, remote).export, fmt)
    if output_path:
        with open(output_path, 'w', encoding='utf-8', newline='') as f:
            f.write(text)
        click.echo(f"Exported to {output_path}.")
    else:
        click.echo(text)


@main.command(name='import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@remote_option
@click.pass_context
def import_cmd(ctx, path, remote):
    """Import a .json or CSV file, one create per row."""
    count = _run(import_file, path, _backend(ctx, remote), ctx.obj['config'])
    click.echo(f"Imported {count} transaction(s) from {path}.")


@main.command(name='quick-add')
@click.argument('name')
@remote_option
@click.pass_context
def quick_add(ctx, name, remote):
    """Add one of the configured quick-add presets, dated today."""
    presets = ctx.obj['config'].get('quick_adds', {})
    preset = presets.get(name.lower())
    if preset is None:
        raise click.BadParameter(
            f"unknown preset '{name}'. Choose from: {', '.join(presets)}", param_hint='NAME'
        )
    tx = _run(_backend(ctx, remote).create_transaction, {
        'date': today_iso(),
        'notes': 'Quick add',
        **preset,
    })
    click.echo(f"Added {tx['type']} {tx['category']} {abs(tx['amount']):.2f} ({tx['id']}).")


@main.command(name='view')
@click.option('--search', 'q', default='', help='Substring of notes or category')
@click.option('--type', 'txn_type', default='', type=click.Choice(('',) + TRANSACTION_TYPES))
@click.option('--category', default='', help='Exact category')
@click.option('--from', 'date_from', default='', help='First date (inclusive)')
@click.option('--to', 'date_to', default='', help='Last date (inclusive)')
@click.option('--sort-by', 'sort_key', default='date')
@click.option('--order', 'sort_dir', default='desc', type=click.Choice(['asc', 'desc']))
@click.option('--page', default=1, type=int)
@click.option('--page-size', default=None, type=click.IntRange(min=1))
@click.option('--json', 'as_json', is_flag=True, default=False, help='Print the page as JSON')
@remote_option
@click.pass_context
def view_cmd(ctx, q, txn_type, category, date_from, date_to, sort_key, sort_dir,
             page, page_size, as_json, remote):
    """Show one page of the filtered, sorted transactions table."""
    cfg = ctx.obj['config']
    state = view.ViewState(page_size=page_size or int(cfg['page_size']))
    state = _run(view.refresh, state, _backend(ctx, remote))
    state = view.set_filters(
        state, q=q, type=txn_type, category=category, date_from=date_from, date_to=date_to,
    )
    state = replace(state, sort_key=sort_key, sort_dir=sort_dir, page=page)
    state, result = view.render(state)

    if as_json:
        click.echo(json.dumps({
            'rows': result.rows, 'total': result.total,
            'page': result.page, 'pages': result.pages,
        }, indent=2, ensure_ascii=False))
        return
    for tx in result.rows:
        flag = ' (recurring)' if tx['recurring'] else ''
        click.echo(
            f"{tx['date']}  {tx['type']:<7}  {tx['category']:<12}  "
            f"{_money(cfg, tx['amount']):>16}  {tx['notes']}{flag}"
        )
    click.echo(f"{result.total} items, page {result.page}/{result.pages}")
