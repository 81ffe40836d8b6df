# storefront/cli.py
import click

from .services import inventory_service, payment_service


@click.command("release-reservations")
def release_reservations():
    """Cancel unpaid online orders past their payment window and restock them."""
    released = payment_service.release_expired_reservations()
    click.echo(f"Released {len(released)} reservation(s)")
    for number in released:
        click.echo(f"  {number}")


@click.command("audit-inventory")
def audit_inventory():
    """Replay every product's ledger and report stock mismatches."""
    report = inventory_service.audit_inventory()
    bad = [r for r in report if not r["ok"]]
    for r in bad:
        click.echo(f"MISMATCH product={r['product_id']} sku={r['sku']} stock={r['stock']} ledger={r['replayed']}")
    click.echo(f"{len(report)} product(s) checked, {len(bad)} mismatch(es)")
    if bad:
        raise SystemExit(1)


@click.command("receive-stock")
@click.option("--product-id", type=int, required=True)
@click.option("--quantity", type=int, required=True)
@click.option("--notes", default=None)
def receive_stock(product_id, quantity, notes):
    entry = inventory_service.receive_stock(product_id, quantity, notes=notes)
    click.echo(f"Product {product_id}: {entry.stock_before} -> {entry.stock_after}")


def register_cli(app):
    app.cli.add_command(release_reservations)
    app.cli.add_command(audit_inventory)
    app.cli.add_command(receive_stock)
