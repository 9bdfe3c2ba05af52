"""
Invoice Market CLI

Main entry point for all CLI commands.
"""

import time

import click

from invoice_market.utils.logger import configure_logging, get_logger


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--env-file", default=None, help="Optional .env file with INVOICE_MARKET_* settings")
@click.version_option(version="0.1.0")
@click.pass_context
def cli(ctx, debug, env_file):
    """Invoice Market - reverse-auction engine for invoices"""
    from invoice_market.core.config import load_config
    from invoice_market.core.errors import ValidationError

    try:
        config = load_config(env_file)
    except ValidationError as e:
        raise click.BadParameter(e.message, param_hint="configuration")

    configure_logging(config, debug=debug)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


# =============================================================================
# Config Command
# =============================================================================


@cli.command("config")
@click.pass_context
def show_config(ctx):
    """Show the effective configuration"""
    config = ctx.obj["config"]
    click.echo("Invoice Market Configuration")
    click.echo("-" * 40)
    click.echo(f"  Bid spread: {config.bid_spread}")
    click.echo(f"  Currency: {config.currency}")
    click.echo(f"  Sweep interval: {config.sweep_interval}s")
    click.echo(f"  Log to file: {config.log_to_file} ({config.log_dir})")


# =============================================================================
# Demo Command
# =============================================================================


@cli.command("demo")
@click.pass_context
def demo(ctx):
    """Walk through the four reference auction scenarios"""
    from invoice_market.core.auction import AuctionEngine
    from invoice_market.core.clock import ManualClock
    from invoice_market.core.events import RecordingNotifier, describe

    config = ctx.obj["config"]
    clock = ManualClock(start=time.time())
    recorder = RecordingNotifier()
    engine = AuctionEngine(config=config, clock=clock, notifiers=[recorder])

    business, alice, bob = "megacorp", "alice", "bob"
    engine.open_account(business, 0, "MegaCorp & Co.")
    engine.open_account(alice, 2000, "Alice")
    engine.open_account(bob, 2000, "Bob")

    def flush():
        for event in recorder.events:
            click.echo(f"    [{event.sequence:>3}] {describe(event, config.currency)}")
        recorder.clear()

    click.echo("=" * 60)
    click.echo("  INVOICE MARKET - DEMO")
    click.echo("=" * 60)
    click.echo()

    # Scenario 1: spread ceiling in manual mode
    click.echo("1. Manual invoice, face 100: bids must be <= 80")
    inv1 = engine.create_invoice(business, "Consulting Q1", 100, clock() + 3600).unwrap()
    for amount in (85, 80):
        result = engine.place_bid(inv1.invoice_id, alice, amount)
        click.echo(f"  bid {amount}: {'accepted' if result.ok else result.error.code}")
    flush()
    click.echo()

    # Scenario 2: auto-accept, winning bid clears the floor
    click.echo("2. Auto invoice, face 200, min bid 150")
    inv2 = engine.create_invoice(business, "Hardware order", 200, clock() + 60, True, 150).unwrap()
    engine.place_bid(inv2.invoice_id, bob, 160)
    clock.advance(61)
    engine.sweep()
    click.echo(f"  status={inv2.status.name}, winner={inv2.winning_bid.bidder_id if inv2.winning_bid else None}")
    flush()
    click.echo()

    # Scenario 3: auto-accept, no bid clears the floor
    click.echo("3. Auto invoice, face 200, min bid 150, only bid 100 is refused by the floor")
    inv3 = engine.create_invoice(business, "Freight", 200, clock() + 60, True, 150).unwrap()
    result = engine.place_bid(inv3.invoice_id, alice, 100)
    click.echo(f"  bid 100: {'accepted' if result.ok else result.error.code}")
    clock.advance(61)
    engine.sweep()
    click.echo(f"  status={inv3.status.name}, winner={inv3.winning_bid}")
    flush()
    click.echo()

    # Scenario 4: manual mode past expiry
    click.echo("4. Manual invoice with two bids, then expiry")
    inv4 = engine.create_invoice(business, "Maintenance", 500, clock() + 60).unwrap()
    engine.place_bid(inv4.invoice_id, alice, 300)
    engine.place_bid(inv4.invoice_id, bob, 350)
    clock.advance(61)
    engine.sweep()
    click.echo(f"  after sweep: {inv4.status.name}")
    late = engine.place_bid(inv4.invoice_id, bob, 400)
    click.echo(f"  late bid: {late.error.code}")
    engine.manual_finalize(inv4.invoice_id, inv4.bids[0])
    click.echo(f"  finalized with {inv4.winning_bid.amount} from {inv4.winning_bid.bidder_id}")
    flush()
    click.echo()

    click.echo("Wallets:")
    for user in (alice, bob, business):
        click.echo(f"  {user}: {engine.balance(user)}")
    click.echo()
    click.echo(f"Stats: {engine.stats()}")


# =============================================================================
# Serve Command
# =============================================================================


@cli.command("serve")
@click.option("--duration", default=10.0, type=float, help="Seconds to run the sweep loop")
@click.option("--interval", default=None, type=float, help="Sweep interval override (seconds)")
@click.option("--auto/--manual", default=True, help="Resolution mode of the sample invoice")
@click.pass_context
def serve(ctx, duration, interval, auto):
    """Run the sweep scheduler against a sample invoice"""
    import asyncio
    from invoice_market.core.auction import AuctionEngine, SweepScheduler
    from invoice_market.core.events import LoggingNotifier

    logger = get_logger("cli")
    config = ctx.obj["config"]
    engine = AuctionEngine(config=config, notifiers=[LoggingNotifier(config.currency)])
    engine.open_account("bidder", 1000)

    ends_in = max(duration / 2, 0.1)
    invoice = engine.create_invoice(
        "business", "Sample invoice", 500, time.time() + ends_in, auto, 100,
    ).unwrap()
    engine.place_bid(invoice.invoice_id, "bidder", 400)

    scheduler = SweepScheduler(engine, interval=interval)
    logger.info(f"Running for {duration}s, invoice #{invoice.invoice_id} ends in {ends_in:.1f}s")

    try:
        asyncio.run(scheduler.run_for(duration))
    except KeyboardInterrupt:
        click.echo("\nStopped.")

    click.echo(f"Invoice #{invoice.invoice_id}: {invoice.status.name}")
    click.echo(f"Sweeps: {scheduler.ticks}")


if __name__ == "__main__":
    cli()
