import re
from typing import Iterable, List, Optional, Tuple

# Any http(s) link up to the next whitespace
URL_RE = re.compile(r"https?://\S+")

# open.spotify.com/track/<id>, id ends at the query string
TRACK_ID_RE = re.compile(r"open\.spotify\.com/track/([^?]+)")

TRACK_URL_MARKER = "open.spotify.com/track"


def extract_urls(text: str) -> List[str]:
    if not text:
        return []
    return URL_RE.findall(text)


def extract_track_urls(text: str) -> Tuple[List[str], bool]:
    """Return the Spotify track links in ``text`` in source order.

    Duplicates are kept. The second element tells whether anything was found.
    """
    urls = [url for url in extract_urls(text) if TRACK_URL_MARKER in url]
    return urls, len(urls) > 0


def extract_track_id(url: str) -> str:
    match = TRACK_ID_RE.search(url or "")
    return match.group(1) if match else ""


def to_track_ids(urls: Iterable[str]) -> List[str]:
    ids = []
    for url in urls:
        track_id = extract_track_id(url)
        if track_id:
            ids.append(track_id)
    return ids


def playlist_track_ids(page: Optional[dict]) -> set:
    """IDs of the tracks on a spotipy ``playlist_items`` page.

    Items without a track (removed or local entries) are skipped.
    """
    existing = set()
    for item in (page or {}).get("items") or []:
        track = (item or {}).get("track")
        if not track or not track.get("id"):
            continue
        existing.add(track["id"])
    return existing


def filter_tracks(page: Optional[dict], track_ids: Iterable[str]) -> List[str]:
    """Drop the IDs already present in the playlist page, keeping input order.

    Repeats inside ``track_ids`` are not collapsed.
    """
    track_ids = list(track_ids)
    if not page or not page.get("items"):
        return track_ids
    existing = playlist_track_ids(page)
    return [track_id for track_id in track_ids if track_id not in existing]
