"""GTFS test fixture builder - creates in-memory ZIP files for testing.

The default feed models the Times Sq-42 St complex: four parent stations
(127, 725, 902, R16) joined by transfers, plus 42 St-Port Authority (A27)
whose reverse transfer is not declared, and a parent station (999) that no
trip serves.
"""

from __future__ import annotations

import io
import zipfile
from pathlib import Path

STOPS_TXT = """\
stop_id,stop_name,stop_lat,stop_lon,location_type,parent_station
127,Times Sq-42 St,40.75529,-73.987495,1,
127N,Times Sq-42 St,40.75529,-73.987495,,127
127S,Times Sq-42 St,40.75529,-73.987495,,127
725,Times Sq-42 St,40.755477,-73.987691,1,
725N,Times Sq-42 St,40.755477,-73.987691,,725
725S,Times Sq-42 St,40.755477,-73.987691,,725
902,Times Sq-42 St,40.755983,-73.986229,1,
902N,Times Sq-42 St,40.755983,-73.986229,,902
902S,Times Sq-42 St,40.755983,-73.986229,,902
R16,Times Sq-42 St,40.754672,-73.986754,1,
R16N,Times Sq-42 St,40.754672,-73.986754,,R16
R16S,Times Sq-42 St,40.754672,-73.986754,,R16
A27,42 St-Port Authority Bus Terminal,40.757308,-73.989735,1,
A27N,42 St-Port Authority Bus Terminal,40.757308,-73.989735,,A27
A27S,42 St-Port Authority Bus Terminal,40.757308,-73.989735,,A27
999,Orphan Station,40.700000,-73.900000,1,
"""

ROUTES_TXT = """\
route_id,agency_id,route_short_name,route_long_name,route_desc,route_type
1,MTA NYCT,1,Broadway - 7 Avenue Local,"Trains operate between 242 St, Bronx, and South Ferry, Manhattan, at all times.",1
7,MTA NYCT,7,Flushing Local,Trains operate between Main St and 34 St-Hudson Yards.,1
GS,MTA NYCT,S,42 St Shuttle,,1
N,MTA NYCT,N,Broadway Local,,1
A,MTA NYCT,A,8 Avenue Express,,1
"""

TRIPS_TXT = """\
route_id,service_id,trip_id,trip_headsign
1,Weekday,T1,South Ferry
7,Weekday,T7,34 St-Hudson Yards
GS,Weekday,TGS,Grand Central-42 St
N,Weekday,TN,Coney Island-Stillwell Av
A,Weekday,TA,Far Rockaway-Mott Av
1,Weekday,T1B,Van Cortlandt Park-242 St
"""

STOP_TIMES_TXT = """\
trip_id,arrival_time,departure_time,stop_id,stop_sequence
T1,08:00:00,08:00:00,127S,1
T1B,08:05:00,08:05:00,127N,1
T7,08:01:00,08:01:00,725S,1
TGS,08:02:00,08:02:00,902N,1
TN,08:03:00,08:03:00,R16S,1
TA,08:04:00,08:04:00,A27S,1
"""

TRANSFERS_TXT = """\
from_stop_id,to_stop_id,transfer_type,min_transfer_time
127,127,2,0
127,725,2,180
127,902,2,180
127,R16,2,180
127,A27,2,300
725,127,2,180
725,725,2,0
"""

# Same feed with a renamed station, for change detection
STOPS_TXT_MODIFIED = STOPS_TXT.replace("Orphan Station", "Renamed Orphan Station")


def gtfs_files(
    stops: str = STOPS_TXT,
    routes: str = ROUTES_TXT,
    trips: str = TRIPS_TXT,
    stop_times: str = STOP_TIMES_TXT,
    transfers: str | None = TRANSFERS_TXT,
    extra_files: dict[str, str] | None = None,
    exclude_files: set[str] | None = None,
) -> dict[str, str]:
    """Return the feed as a file name -> content mapping."""
    files = {
        "stops.txt": stops,
        "routes.txt": routes,
        "trips.txt": trips,
        "stop_times.txt": stop_times,
    }
    if transfers is not None:
        files["transfers.txt"] = transfers
    if extra_files:
        files.update(extra_files)

    exclude = exclude_files or set()
    return {name: content for name, content in files.items() if name not in exclude}


def build_gtfs_zip(**kwargs: object) -> bytes:
    """Build an in-memory GTFS ZIP file.

    Accepts the same keyword arguments as ``gtfs_files``.

    Returns:
        bytes of the ZIP file.
    """
    buf = io.BytesIO()

    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, content in gtfs_files(**kwargs).items():  # type: ignore[arg-type]
            zf.writestr(name, content)

    return buf.getvalue()


def write_gtfs_dir(directory: Path, **kwargs: object) -> Path:
    """Write the feed as an unpacked directory and return its path."""
    directory.mkdir(parents=True, exist_ok=True)
    for name, content in gtfs_files(**kwargs).items():  # type: ignore[arg-type]
        (directory / name).write_text(content, encoding="utf-8")
    return directory


def build_invalid_zip() -> bytes:
    """Build bytes that are not a valid ZIP."""
    return b"This is not a ZIP file at all."


def build_empty_csv_zip() -> bytes:
    """Build a ZIP with empty CSV files (headers only)."""
    return build_gtfs_zip(
        stops="stop_id,stop_name,stop_lat,stop_lon\n",
        routes="route_id,route_short_name,route_long_name\n",
        trips="route_id,service_id,trip_id\n",
        stop_times="trip_id,arrival_time,stop_id,stop_sequence\n",
        transfers=None,
    )
