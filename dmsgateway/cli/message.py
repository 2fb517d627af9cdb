"""dms-message -- Read, write, blank and activate changeable messages."""

import sys

from dmsgateway.cli._common import (
    EXIT_USAGE_ERROR,
    base_parser,
    exit_code,
    format_result,
    make_gateway,
    setup_logging,
)
from dmsgateway.paging import ALL
from dmsgateway.types import Message, PagedResult


def render_message(message: Message) -> str:
    active = " *" if message.is_active else ""
    return f"{message.number:>4d}  {message.status.label:<10s} {message.owner or '-':<12s} {message.text}{active}"


def render_page(page: PagedResult) -> str:
    lines = [render_message(m) for m in page]
    lines.append(f"({len(page)} of {page.total_count}, page {page.page})")
    return "\n".join(lines)


def main() -> int:
    parser = base_parser("Manage DMS changeable messages")
    commands = parser.add_subparsers(dest="command", required=True)

    get = commands.add_parser("get", help="show one message")
    get.add_argument("number", type=int)

    listing = commands.add_parser("list", help="list messages")
    listing.add_argument("--page", type=int, default=0)
    listing.add_argument("--size", type=int, default=ALL, help="page size (-1 = all)")

    write = commands.add_parser("set", help="store a MULTI string")
    write.add_argument("number", type=int)
    write.add_argument("multi", help="MULTI string, e.g. '[jl3]HELLO'")
    write.add_argument("--owner", default="", help="message owner")
    write.add_argument("--activate", action="store_true", help="show the message after storing it")

    delete = commands.add_parser("delete", help="blank a message slot")
    delete.add_argument("number", type=int)

    activate = commands.add_parser("activate", help="show a stored message")
    activate.add_argument("number", type=int)

    deactivate = commands.add_parser("deactivate", help="blank the sign")
    deactivate.add_argument("number", type=int)

    args = parser.parse_args()
    setup_logging(args.verbose)

    if args.command == "set" and not args.multi.strip():
        print("Error: MULTI string must not be empty (use 'delete' to blank a slot)", file=sys.stderr)
        return EXIT_USAGE_ERROR

    try:
        gw = make_gateway(args)
    except KeyboardInterrupt:
        return 130
    except Exception as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_USAGE_ERROR

    fmt = args.output_format
    with gw:
        if args.command == "get":
            result = gw.get_message(args.address, args.number)
            print(format_result(result, fmt=fmt, render=render_message))
        elif args.command == "list":
            result = gw.get_messages(args.address, page=args.page, size=args.size)
            print(format_result(result, fmt=fmt, render=render_page))
        elif args.command == "set":
            result = gw.write_message(
                args.address, args.number, multi_string=args.multi, owner=args.owner, activate=args.activate
            )
            print(format_result(result, fmt=fmt, render=lambda o: f"saved (crc 0x{o.crc:04x})"))
        elif args.command == "delete":
            result = gw.delete_message(args.address, args.number)
            print(format_result(result, fmt=fmt, render=lambda _: "deleted"))
        else:
            result = gw.activate_message(args.address, args.number, activate=args.command == "activate")
            print(format_result(result, fmt=fmt, render=lambda _: f"{args.command}d"))
    return exit_code(result)


if __name__ == "__main__":
    sys.exit(main())
