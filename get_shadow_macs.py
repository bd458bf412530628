#!/usr/bin/env python3
import argparse
import getpass
import logging
import sys

from esxi_inventory import DEVICE_PATTERN, InventoryError, connect_vsphere, find_hosts
from mac_report import FORMATS, render, write_report
from settings import ConfigError, load_settings
from shadow_mac import get_shadow_macs_batch

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Report the shadow (virtual) MAC addresses of ESXi physical network adapters."
    )
    parser.add_argument("hosts", nargs="*", metavar="HOST", help="ESXi host names or patterns (default: all hosts)")
    parser.add_argument("-s", "--server", help="vCenter or ESXi server (env VCENTER_SERVER)")
    parser.add_argument("-u", "--user", help="vCenter user (env VCENTER_USER)")
    parser.add_argument("--port", type=int, help="vCenter port (env VCENTER_PORT)")
    parser.add_argument("--verify-ssl", action="store_true", default=None, help="verify the server certificate")
    parser.add_argument("--esxi-user", help="ESXi SSH user (env ESXI_USER)")
    parser.add_argument("--esxi-port", type=int, help="ESXi SSH port (env ESXI_SSH_PORT)")
    parser.add_argument("-c", "--cluster", help="only hosts whose parent has this name")
    parser.add_argument("-p", "--pattern", default=DEVICE_PATTERN, help="adapter name pattern (default: %(default)s)")
    parser.add_argument("-f", "--format", choices=FORMATS, default="table", help="output format (default: %(default)s)")
    parser.add_argument("-o", "--output", help="write the report to this file instead of stdout")
    parser.add_argument("--continue-on-error", action="store_true", help="skip hosts that fail instead of stopping")
    parser.add_argument("-v", "--verbose", action="store_true", help="show progress messages")
    return parser.parse_args(argv)


def build_settings(args, environ=None):
    settings = load_settings(environ)
    for field in ("server", "user", "port", "verify_ssl", "esxi_user", "esxi_port"):
        value = getattr(args, field)
        if value is not None:
            setattr(settings, field, value)

    # ===== Prompt for whatever the environment did not provide =====
    if not settings.server:
        settings.server = input("Enter vCenter hostname or IP: ").strip()
    if not settings.password:
        settings.password = getpass.getpass(f"Enter password for {settings.user}: ")
    if not settings.esxi_password:
        settings.esxi_password = getpass.getpass(f"Enter ESXi password for {settings.esxi_user}: ")
    return settings.require()


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # paramiko is chatty at DEBUG
    logging.getLogger("paramiko").setLevel(logging.WARNING)

    try:
        settings = build_settings(args)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    errors = []
    try:
        with connect_vsphere(settings.server, settings.user, settings.password,
                             settings.port, settings.verify_ssl) as si:
            hosts = find_hosts(si, args.hosts, args.cluster)
            logger.info("Querying %d hosts", len(hosts))
            records = get_shadow_macs_batch(hosts, settings.esxi_credentials(), args.pattern,
                                            args.continue_on_error, errors)
    except InventoryError as e:
        print(f"Inventory error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.output:
        path = write_report(records, args.format, args.output, errors)
        print(f"Report generated: {path}")
    else:
        sys.stdout.write(render(records, args.format, errors))

    for host_name, e in errors:
        print(f"Skipped {host_name}: {e}", file=sys.stderr)
    return 1 if errors else 0


if __name__ == "__main__":
    sys.exit(main())
