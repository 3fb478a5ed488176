"""Irrigation controller entrypoint.

Polls the Blynk bridge for soil moisture and pump flags, reconciles them
into pump state and forwards control commands back to the device.

Usage: python -m irrigator.blynk
"""

from irrigator.blynk.poller import main

if __name__ == "__main__":
    main()
