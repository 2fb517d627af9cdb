"""dms-status -- Show sign status or restart the sign controller."""

import sys

from dmsgateway.cli._common import (
    EXIT_USAGE_ERROR,
    base_parser,
    exit_code,
    format_result,
    make_gateway,
    setup_logging,
)
from dmsgateway.types import PanelStatus


def render_status(status: PanelStatus) -> str:
    current = status.current_message
    lines = [
        f"time          {status.current_date:%Y-%m-%d %H:%M:%S %Z}",
        f"size          {status.sign_width}x{status.sign_height} px",
        f"fonts         {status.number_fonts}",
        f"pages         max {status.max_pages}, MULTI length max {status.max_multi_length}",
        f"messages      {status.permanent_messages} permanent, "
        f"{status.changeable_messages}/{status.max_changeable_messages} changeable",
        f"graphics      {status.number_graphics}/{status.max_graphics}",
        f"illumination  {status.illumination_control.label}, "
        f"brightness {status.brightness_level}, manual {status.manual_level}",
    ]
    if current is not None:
        lines.append(f"showing       {current.text or '(blank)'} [owner {current.owner or '-'}]")
    return "\n".join(lines)


def main() -> int:
    parser = base_parser("Show DMS status")
    parser.add_argument("--restart", action="store_true", help="request a software reset instead")
    args = parser.parse_args()
    setup_logging(args.verbose)

    try:
        gw = make_gateway(args)
    except KeyboardInterrupt:
        return 130
    except Exception as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_USAGE_ERROR

    with gw:
        if args.restart:
            result = gw.restart_panel(args.address)
            print(format_result(result, fmt=args.output_format, render=lambda _: "restart requested"))
        else:
            result = gw.get_status(args.address)
            print(format_result(result, fmt=args.output_format, render=render_status))
    return exit_code(result)


if __name__ == "__main__":
    sys.exit(main())
