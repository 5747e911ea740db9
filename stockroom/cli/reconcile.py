# stockroom/cli/reconcile.py
"""
Run a product reconciliation from a JSON file.

    python -m stockroom.cli.reconcile --owner <uuid> --file products.json --mode replace_all

The file holds either a list of products or {"products": [...]}.
"""
import asyncio
import json
import logging

import click

from stockroom.core.config import get_settings
from stockroom.core.enums import ReconcileMode
from stockroom.core.exceptions import BaseServiceError
from stockroom.database import async_session, engine
from stockroom.services.product_store import SqlProductStore
from stockroom.services.reconciliation_service import ProductReconciler

logger = logging.getLogger(__name__)


def load_products(path: str) -> list:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("products", [])
    if not isinstance(data, list):
        raise click.BadParameter("expected a list of products", param_hint="--file")
    return data


async def run_reconcile(owner_id: str, products: list, mode: ReconcileMode, atomic: bool):
    try:
        async with async_session() as session:
            reconciler = ProductReconciler(SqlProductStore(session), atomic=atomic)
            return await reconciler.reconcile(products, owner_id, mode)
    finally:
        await engine.dispose()


@click.command()
@click.option('--owner', 'owner_id', required=True, help='Owner (user) id whose products are replaced')
@click.option('--file', 'path', required=True, type=click.Path(exists=True, dir_okay=False), help='JSON file with the product set')
@click.option('--mode', type=click.Choice([m.value for m in ReconcileMode]), default=ReconcileMode.UPSERT_SUBSET.value, show_default=True)
@click.option('--non-atomic', is_flag=True, help='Commit delete and insert separately')
def reconcile(owner_id, path, mode, non_atomic):
    """Replace an owner's products with the contents of a JSON file"""
    logging.basicConfig(
        level=get_settings().LOG_LEVEL,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    products = load_products(path)
    try:
        result = asyncio.run(run_reconcile(owner_id, products, ReconcileMode(mode), atomic=not non_atomic))
    except BaseServiceError as e:
        logger.error(f"Reconciliation failed: {e.message}")
        raise click.ClickException(e.message)

    click.echo(f"Deleted: {result.deleted_count}")
    click.echo(f"Inserted: {result.inserted_count}")


if __name__ == "__main__":
    reconcile()
