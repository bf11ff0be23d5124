"""Fetch the live-timing screen once and print the decoded laps."""

from karttiming import ParseError, TimingClient, TransportError
from karttiming._time import utc_now
from karttiming.parser import parse_timing


def main() -> None:
    with TimingClient(track_id=110, timeout=10.0) as timing:
        try:
            raw = timing.fetch()
        except TransportError as exc:
            print(f"Could not reach the timing screen: {exc}")
            return

    try:
        parsed = parse_timing(raw, utc_now())
    except ParseError as exc:
        print(f"Timing screen returned something unexpected: {exc}")
        return

    header = parsed.header
    print(f"=== Session {header.session_number} ({header.track_length}) ===")
    for lap in sorted(parsed.laps, key=lambda x: x.position):
        gap = lap.gap or "-"
        print(f"  P{lap.position:<3} kart {lap.kart_id:>4}  lap {lap.lap_number:>3}  {lap.lap_time:>8}s  gap {gap}")
    if parsed.dropped:
        print(f"  ({parsed.dropped} rows dropped)")


if __name__ == "__main__":
    main()
