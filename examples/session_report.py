"""Print today's sessions and their laps from the ingestion database."""

import sys
from datetime import UTC, datetime

from karttiming.storage import LapRepository, SessionRepository, WeatherStore, create_db_engine


def main(database_url: str) -> None:
    engine = create_db_engine(database_url)
    sessions = SessionRepository(engine, WeatherStore(engine))
    laps = LapRepository(engine, sessions)

    today = datetime.now(UTC).date()
    infos = sessions.get_session_infos_for_day(today)
    print(f"=== {len(infos)} sessions on {today} ===")
    for info in infos:
        temp = f"{info.air_temp_c:.1f}°C" if info.air_temp_c is not None else "n/a"
        print(f"\n{info.name} (last seen {info.last_seen_at:%H:%M}, air {temp})")

        by_kart: dict[str, list] = {}
        for lap in laps.get_history_for_session(info.session_id):
            by_kart.setdefault(lap.kart_id, []).append(lap)

        for kart, kart_laps in sorted(by_kart.items(), key=lambda item: item[0].zfill(4)):
            valid = [lap.lap_time for lap in kart_laps if not lap.invalid_lap]
            best = f"{min(valid)}s" if valid else "n/a"
            print(f"  kart {kart:>4}: {len(kart_laps)} laps, best {best}")

    print(f"\nTotal laps recorded: {laps.get_total_laps_driven()}")
    engine.dispose()


if __name__ == "__main__":
    main(sys.argv[1] if len(sys.argv) > 1 else "sqlite:///karttiming.db")
