#!/usr/bin/env python3
"""Example: connect to a Logix controller and read/write a few typed tags."""

import sys

from pyabtag import TagClient, TagType
from pyabtag.errors import ConnectError, ProtocolIOError, TagPathError


def main() -> None:
    address = "192.168.1.10/0"  # change to your controller IP/slot

    try:
        with TagClient(address) as plc:
            # Read a REAL tag
            v = plc.read("Flow_PV", TagType.REAL)
            print(f"Flow_PV = {v.value}")

            # Program-scoped DINT and a bit of a DINT
            v = plc.read("Program:Main.Batch_Count", TagType.DINT)
            print(f"Batch_Count = {v.value}")
            v = plc.read("Status.3", TagType.BOOL)
            print(f"Status.3 = {v.value}")

            # Write a setpoint (example; uncomment if your controller allows)
            # plc.write_real("Flow_SP", 125.0)
    except TagPathError as e:
        print(f"Invalid tag: {e}", file=sys.stderr)
        sys.exit(1)
    except (ConnectError, ProtocolIOError) as e:
        print(f"Connection/protocol error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
