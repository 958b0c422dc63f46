#!/usr/bin/env python3
"""Example: run the flow bridge for a fixed number of cycles; graceful shutdown on Ctrl+C."""

import logging
import sys

from pyabtag import BridgeConfig, BridgeLoop, FieldBusClient, GasComposition, RetryPolicy, TagClient, TagPath
from pyabtag.errors import ComputationFault, ConnectError, ProtocolIOError


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    config = BridgeConfig(
        velocity_register=100,
        rate_register=102,
        pressure_tag=TagPath.parse("Line_Pressure"),
        temperature_tag=TagPath.parse("Line_Temp"),
        raw_rate_tag=TagPath.parse("Meter_Raw_Rate"),
        base_rate_tag=TagPath.parse("Meter_Base_Rate"),
        diameter_in=6.0,
        composition=GasComposition.from_fractions({"methane": 0.92, "ethane": 0.05, "nitrogen": 0.03}),
        retry=RetryPolicy(max_attempts=5),
    )

    loop = None
    try:
        with TagClient("192.168.1.10/0") as tags, FieldBusClient("/dev/ttyUSB0", slave=1, baudrate=9600) as bus:
            loop = BridgeLoop(tags, bus, config)
            loop.run(max_cycles=20)
    except KeyboardInterrupt:
        if loop is not None:
            loop.stop()
        print("\nStopped.")
    except (ConnectError, ProtocolIOError, ComputationFault) as e:
        print(f"Bridge error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
