import argparse
import sys

from ticketgimp import constants as tcst
from ticketgimp.core.configuration import factory_config
from ticketgimp.core.models.config import Config
from ticketgimp.display.barcode import QrBarcodeEncoder, render_ascii, to_data_uri
from ticketgimp.display.ticket_display import TicketDisplay
from ticketgimp.logging_utils import get_logger
from ticketgimp.security.tickets.errors import DecodeError, TicketError
from ticketgimp.security.tickets.models import TicketDescriptor, TokenResult, TokenStatus
from ticketgimp.security.tickets.operations import compute_token_result, encode_ticket
from ticketgimp.utils import unix_now_ms

logger = get_logger(__name__)


def _print_result(result: TokenResult, barcode: bytes | None, config: Config, data_uri: bool = False) -> None:
    if result.status is TokenStatus.NO_TICKET:
        print("No ticket set, add one with `set <ticket>`")
        return
    if result.status is TokenStatus.INVALID_TICKET:
        print(f"Ticket is not usable: {result.error}")
        return

    assert result.token is not None
    print(render_ascii(result.token))
    print(result.token, flush=True)
    if barcode is None:
        return
    if data_uri:
        print(to_data_uri(barcode), flush=True)
    if config.barcode_output_path is not None:
        try:
            config.barcode_output_path.write_bytes(barcode)
        except OSError as e:
            logger.error(f"Failed to write barcode to {config.barcode_output_path}: {str(e)}")
            return
        logger.debug(f"Wrote barcode to {config.barcode_output_path}")


def _set(args: argparse.Namespace, config: Config) -> int:
    if not config.ticket_store.set(tcst.TICKET_STORAGE_KEY, args.ticket.strip()):
        logger.error("Failed to save ticket :(")
        return 1
    return 0


def _token(args: argparse.Namespace, config: Config) -> int:
    ticket = args.ticket if args.ticket is not None else config.ticket_store.get(tcst.TICKET_STORAGE_KEY)
    result = compute_token_result(ticket, unix_now_ms())
    if not result.is_ready:
        print(result.error or "No ticket set", file=sys.stderr)
        return 1
    print(result.token)
    return 0


def _show(args: argparse.Namespace, config: Config) -> int:
    needs_image = config.barcode_output_path is not None or args.data_uri
    encoder = QrBarcodeEncoder() if needs_image else None
    display = TicketDisplay(
        store=config.ticket_store,
        encoder=encoder,
        on_render=lambda result, barcode: _print_result(result, barcode, config, data_uri=args.data_uri),
        poll_interval=config.poll_interval,
    )
    if args.ticket is not None:
        display.update_ticket(args.ticket)
    else:
        display.load()

    if args.once:
        result = display.result if display.result is not None else display.refresh(unix_now_ms())
        return 0 if result.is_ready else 1

    display.start()
    try:
        display.scheduler.stop_event.wait()
    except KeyboardInterrupt:
        logger.info("Stopping display")
    finally:
        display.stop()

    if display.scheduler.error is not None:
        logger.error(f"Display stopped refreshing: {display.scheduler.error}")
        return 1
    return 0


def _encode(args: argparse.Namespace, config: Config) -> int:
    try:
        descriptor = TicketDescriptor(
            bearer_id=args.bearer_id,
            customer_key=bytes.fromhex(args.customer_key),
            event_key=bytes.fromhex(args.event_key),
        )
    except ValueError as e:
        raise DecodeError(str(e)) from e
    print(encode_ticket(descriptor))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Show a rotating ticket barcode")
    subparsers = parser.add_subparsers(dest="command", required=True)

    set_parser = subparsers.add_parser("set", help="Store the ticket text")
    set_parser.add_argument("ticket", type=str, help="Base64 ticket")
    set_parser.set_defaults(handler=_set)

    token_parser = subparsers.add_parser("token", help="Print the current signed token")
    token_parser.add_argument("--ticket", type=str, required=False, help="Ticket to use instead of the stored one", default=None)
    token_parser.set_defaults(handler=_token)

    show_parser = subparsers.add_parser("show", help="Display the barcode, refreshing every time window")
    show_parser.add_argument("--ticket", type=str, required=False, help="Ticket to store and show", default=None)
    show_parser.add_argument("--once", action="store_true", help="Render once and exit")
    show_parser.add_argument("--data-uri", action="store_true", help="Also print the barcode as a PNG data uri")
    show_parser.set_defaults(handler=_show)

    encode_parser = subparsers.add_parser("encode", help="Build a ticket from its fields")
    encode_parser.add_argument("--bearer-id", type=str, required=True, help="Bearer id")
    encode_parser.add_argument("--customer-key", type=str, required=True, help="Customer key, hex")
    encode_parser.add_argument("--event-key", type=str, required=True, help="Event key, hex")
    encode_parser.set_defaults(handler=_encode)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = factory_config()
    try:
        return args.handler(args, config)
    except TicketError as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
