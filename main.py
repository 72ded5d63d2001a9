import argparse
import asyncio
from datetime import date

from milewise.api.app import run as run_api
from milewise.config import settings
from milewise.domain.models import CardSimulationResult, Merchant, SimulationInput
from milewise.logging_setup import setup_logging
from milewise.wiring import build_engine_from_settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Milewise unified entrypoint")
    parser.add_argument(
        "mode",
        nargs="?",
        choices=["api", "simulate"],
        default="api",
        help="Run mode: api (default), simulate",
    )
    parser.add_argument("--amount", type=float, help="Purchase amount (simulate mode)")
    parser.add_argument("--currency", default="USD")
    parser.add_argument("--merchant", default="")
    parser.add_argument("--mcc", default=None)
    parser.add_argument("--online", action="store_true")
    parser.add_argument("--contactless", action="store_true")
    parser.add_argument("--date", default=None, help="YYYY-MM-DD, defaults to today")
    parser.add_argument("--miles-currency", default=settings.default_miles_currency_id)
    return parser


def _format_line(item: CardSimulationResult) -> str:
    if item.excluded:
        return f"{item.rank}. {item.payment_method_name}: excluded ({item.reason}: {item.detail})"
    return (
        f"{item.rank}. {item.payment_method_name}: {item.miles_equivalent:.2f} miles "
        f"({item.total_points} pts = {item.base_points} base + {item.bonus_points} bonus, "
        f"rule={item.applied_rule_id or '-'})"
    )


async def _simulate(args: argparse.Namespace) -> None:
    engine = build_engine_from_settings(settings)
    simulation = SimulationInput(
        merchant=Merchant(name=args.merchant, mcc=args.mcc, is_online=args.online),
        amount=args.amount,
        currency=args.currency,
        is_contactless=args.contactless,
        date=date.fromisoformat(args.date) if args.date else date.today(),
    )
    payment_methods = await engine.payment_methods.get_payment_methods()
    ranked = await engine.simulator.simulate(simulation, payment_methods, args.miles_currency)

    if not ranked:
        print("No active cards to compare.")
        return
    for item in ranked:
        print(_format_line(item))


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    if args.mode == "api":
        run_api()
        return

    if args.amount is None or args.miles_currency is None:
        parser.error("simulate mode needs --amount and --miles-currency")

    setup_logging(settings.log_level)
    asyncio.run(_simulate(args))


if __name__ == "__main__":
    main()
