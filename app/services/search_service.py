"""
Design, artist and studio search.

The search_* functions return (rows, total). Filters run in SQL; distance
filtering runs in Python after the query.
"""

from urllib.parse import urlencode

from sqlalchemy import and_, func, or_, select

from app.extensions import db
from app.models import (
    ArtistProfile,
    Design,
    Favorite,
    Profile,
    Studio,
    StudioArtist,
    t_design_styles,
    t_design_tags,
)
from app.utils.geo import distance_km
from app.utils.serializers import serialize_artist, serialize_design, serialize_studio
from app.utils.validators import parse_bool, parse_id_list

DEFAULT_PAGE_SIZE = 12
MAX_PAGE_SIZE = 50

DESIGN_SORTS = ("newest", "price_low", "price_high", "popular")
ARTIST_SORTS = ("rating", "experience", "name_asc", "name_desc")
STUDIO_SORTS = ("name_asc", "name_desc", "artists")

TAB_SORTS = {
    "designs": DESIGN_SORTS,
    "artists": ARTIST_SORTS,
    "studios": STUDIO_SORTS,
}
DEFAULT_TAB = "designs"


def default_sort(tab):
    return TAB_SORTS.get(tab, DESIGN_SORTS)[0]


def resolve_sort(tab, sort):
    """The requested sort if the tab supports it, otherwise the tab's default."""
    return sort if sort in TAB_SORTS.get(tab, DESIGN_SORTS) else default_sort(tab)


def page_to_offset(page, limit):
    """(limit, offset) from a 1-based page, clamping limit to [1, MAX_PAGE_SIZE]."""
    try:
        limit = int(limit) if limit not in (None, "") else DEFAULT_PAGE_SIZE
    except (TypeError, ValueError):
        limit = DEFAULT_PAGE_SIZE
    limit = max(1, min(limit, MAX_PAGE_SIZE))

    try:
        page = int(page) if page not in (None, "") else 1
    except (TypeError, ValueError):
        page = 1
    page = max(page, 1)
    return limit, (page - 1) * limit


# -------------------------------------------------------------------------
# Query-string round trip
# -------------------------------------------------------------------------

_LIST_KEYS = ("styles", "tags")
_FLOAT_KEYS = ("min_price", "max_price", "min_rating", "distance", "lat", "lng")
_INT_KEYS = ("artist", "studio", "page", "limit")
_BOOL_KEYS = ("color", "flash", "include_booked")
_TEXT_KEYS = ("q", "tab", "sort", "city", "state", "country", "location")
# order used when building a query string
SEARCH_PARAM_KEYS = (
    "q", "tab", "sort", "styles", "tags", "artist", "studio",
    "min_price", "max_price", "color", "flash", "include_booked",
    "city", "state", "country", "location", "min_rating",
    "distance", "lat", "lng", "page", "limit",
)


def parse_search_params(args):
    """Typed filters from a query-string mapping. Unknown or malformed values are dropped."""
    params = {}
    for key in _TEXT_KEYS:
        value = (args.get(key) or "").strip()
        if value:
            params[key] = value

    for key in _LIST_KEYS:
        ids = parse_id_list(args.get(key))
        if ids:
            params[key] = ids

    for key in _FLOAT_KEYS:
        raw = args.get(key)
        if raw in (None, ""):
            continue
        try:
            params[key] = float(raw)
        except (TypeError, ValueError):
            continue

    for key in _INT_KEYS:
        raw = args.get(key)
        if raw in (None, ""):
            continue
        try:
            params[key] = int(raw)
        except (TypeError, ValueError):
            continue

    for key in _BOOL_KEYS:
        value = parse_bool(args.get(key))
        if value is not None:
            params[key] = value

    return params


def _format_param(value):
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def build_search_query(params):
    """Query string for params; parse_search_params reverses it."""
    pairs = [
        (key, _format_param(params[key]))
        for key in SEARCH_PARAM_KEYS
        if key in params and params[key] not in (None, "", [])
    ]
    return urlencode(pairs)


# -------------------------------------------------------------------------
# Designs
# -------------------------------------------------------------------------


def _popularity_subquery():
    return (
        select(Favorite.design_id, func.count(Favorite.id).label("favorites"))
        .where(Favorite.design_id.isnot(None))
        .group_by(Favorite.design_id)
        .subquery()
    )


def search_designs_advanced(
    style_ids=None,
    tag_ids=None,
    artist_id=None,
    studio_id=None,
    min_price=None,
    max_price=None,
    is_color=None,
    is_flash=None,
    search_term=None,
    city=None,
    state=None,
    country=None,
    distance=None,
    lat=None,
    lng=None,
    include_booked=False,
    sort_by="newest",
    limit=DEFAULT_PAGE_SIZE,
    offset=0,
):
    """(rows, total) of designs matching every given filter."""
    query = (
        select(Design)
        .outerjoin(Studio, Design.studio_id == Studio.id)
        .join(ArtistProfile, Design.artist_id == ArtistProfile.id)
    )

    if style_ids:
        query = query.where(
            Design.id.in_(
                select(t_design_styles.c.design_id).where(
                    t_design_styles.c.style_id.in_(style_ids)
                )
            )
        )
    if tag_ids:
        query = query.where(
            Design.id.in_(
                select(t_design_tags.c.design_id).where(
                    t_design_tags.c.tag_id.in_(tag_ids)
                )
            )
        )
    if artist_id:
        query = query.where(Design.artist_id == artist_id)
    if studio_id:
        query = query.where(Design.studio_id == studio_id)
    if min_price is not None:
        query = query.where(Design.base_price >= min_price)
    if max_price is not None:
        query = query.where(Design.base_price <= max_price)
    if is_color is not None:
        query = query.where(Design.is_color == is_color)
    if is_flash is not None:
        query = query.where(Design.is_flash == is_flash)
    if not include_booked:
        query = query.where(Design.is_available.is_(True))
    if search_term:
        pattern = f"%{search_term.lower()}%"
        query = query.where(
            or_(
                func.lower(Design.title).like(pattern),
                func.lower(Design.description).like(pattern),
            )
        )

    # Studio location wins; independent artists fall back to their own.
    for value, studio_col, artist_col in (
        (city, Studio.city, ArtistProfile.city),
        (state, Studio.state, ArtistProfile.state),
        (country, Studio.country, ArtistProfile.country),
    ):
        if value:
            pattern = f"%{value.lower()}%"
            query = query.where(
                or_(
                    func.lower(studio_col).like(pattern),
                    and_(Design.studio_id.is_(None), func.lower(artist_col).like(pattern)),
                )
            )

    if sort_by == "price_low":
        query = query.order_by(Design.base_price.asc(), Design.id.asc())
    elif sort_by == "price_high":
        query = query.order_by(Design.base_price.desc(), Design.id.desc())
    elif sort_by == "popular":
        popularity = _popularity_subquery()
        query = query.outerjoin(popularity, popularity.c.design_id == Design.id).order_by(
            func.coalesce(popularity.c.favorites, 0).desc(),
            Design.created_at.desc(),
            Design.id.desc(),
        )
    else:
        query = query.order_by(Design.created_at.desc(), Design.id.desc())

    designs = db.session.scalars(query).unique().all()

    distances = {}
    if distance is not None and lat is not None and lng is not None:
        within = []
        for design in designs:
            source = design.studio or design.artist
            d = distance_km(lat, lng, source.latitude, source.longitude)
            if d is not None and d <= distance:
                distances[design.id] = round(d, 2)
                within.append(design)
        designs = within

    total = len(designs)
    rows = []
    for design in designs[offset : offset + limit]:
        row = serialize_design(design)
        if design.id in distances:
            row["distance_km"] = distances[design.id]
        rows.append(row)
    return rows, total


# -------------------------------------------------------------------------
# Artists & studios
# -------------------------------------------------------------------------


def search_artists(style_ids=None, location=None, min_rating=None, limit=DEFAULT_PAGE_SIZE, offset=0):
    """(rows, total) of artists, highest rated first."""
    query = select(ArtistProfile).join(Profile, ArtistProfile.id == Profile.id)

    if style_ids:
        query = query.where(
            ArtistProfile.id.in_(
                select(Design.artist_id)
                .join(t_design_styles, t_design_styles.c.design_id == Design.id)
                .where(t_design_styles.c.style_id.in_(style_ids))
            )
        )
    if location:
        pattern = f"%{location.lower()}%"
        query = query.where(
            or_(
                func.lower(ArtistProfile.city).like(pattern),
                func.lower(ArtistProfile.state).like(pattern),
                func.lower(ArtistProfile.country).like(pattern),
            )
        )
    if min_rating is not None:
        query = query.where(ArtistProfile.average_rating >= min_rating)

    total = db.session.scalar(select(func.count()).select_from(query.subquery()))
    artists = db.session.scalars(
        query.order_by(
            func.coalesce(ArtistProfile.average_rating, 0).desc(),
            ArtistProfile.id.asc(),
        )
        .limit(limit)
        .offset(offset)
    ).all()
    return [serialize_artist(a) for a in artists], total


def search_studios(location=None, term=None, limit=DEFAULT_PAGE_SIZE, offset=0):
    """(rows, total) of studios ordered by name, each with its active roster size."""
    roster = (
        select(StudioArtist.studio_id, func.count(StudioArtist.id).label("artist_count"))
        .where(StudioArtist.is_active.is_(True))
        .group_by(StudioArtist.studio_id)
        .subquery()
    )
    query = select(Studio, func.coalesce(roster.c.artist_count, 0)).outerjoin(
        roster, roster.c.studio_id == Studio.id
    )

    if location:
        query = query.where(func.lower(Studio.city).like(f"%{location.lower()}%"))
    if term:
        pattern = f"%{term.lower()}%"
        query = query.where(
            or_(
                func.lower(Studio.name).like(pattern),
                func.lower(Studio.description).like(pattern),
            )
        )

    total = db.session.scalar(
        select(func.count()).select_from(query.subquery())
    )
    rows = db.session.execute(
        query.order_by(Studio.name.asc(), Studio.id.asc()).limit(limit).offset(offset)
    ).all()
    return [serialize_studio(studio, artist_count=count) for studio, count in rows], total


# -------------------------------------------------------------------------
# In-memory filtering for the unified search page
# -------------------------------------------------------------------------


def filter_by_name(rows, term, key):
    if not term:
        return list(rows)
    needle = term.lower()
    return [row for row in rows if needle in (row.get(key) or "").lower()]


def sort_artists(rows, sort):
    if sort == "experience":
        return sorted(rows, key=lambda r: r.get("years_experience") or 0, reverse=True)
    if sort == "name_asc":
        return sorted(rows, key=lambda r: (r.get("artist_name") or "").lower())
    if sort == "name_desc":
        return sorted(rows, key=lambda r: (r.get("artist_name") or "").lower(), reverse=True)
    return sorted(rows, key=lambda r: r.get("average_rating") or 0, reverse=True)


def sort_studios(rows, sort):
    if sort == "name_desc":
        return sorted(rows, key=lambda r: r["name"].lower(), reverse=True)
    if sort == "artists":
        return sorted(rows, key=lambda r: r.get("artist_count") or 0, reverse=True)
    return sorted(rows, key=lambda r: r["name"].lower())


def unified_search(params):
    """
    Results for the search page: the active tab is paginated and sorted, the
    other two only contribute their totals.
    """
    term = params.get("q")
    tab = params.get("tab") if params.get("tab") in TAB_SORTS else DEFAULT_TAB
    sort = resolve_sort(tab, params.get("sort"))
    limit, offset = page_to_offset(params.get("page"), params.get("limit"))

    design_rows, design_total = search_designs_advanced(
        style_ids=params.get("styles"),
        tag_ids=params.get("tags"),
        min_price=params.get("min_price"),
        max_price=params.get("max_price"),
        is_color=params.get("color"),
        is_flash=params.get("flash"),
        search_term=term,
        city=params.get("city"),
        state=params.get("state"),
        country=params.get("country"),
        distance=params.get("distance"),
        lat=params.get("lat"),
        lng=params.get("lng"),
        include_booked=params.get("include_booked", False),
        sort_by=sort if tab == "designs" else "newest",
        limit=limit,
        offset=offset,
    )

    # Artists and studios are name-filtered after the query, so fetch the
    # whole match set and paginate here.
    artist_rows, _ = search_artists(
        style_ids=params.get("styles"),
        location=params.get("location"),
        min_rating=params.get("min_rating"),
        limit=None,
        offset=0,
    )
    artist_rows = filter_by_name(artist_rows, term, "artist_name")
    studio_rows, _ = search_studios(location=params.get("location"), limit=None, offset=0)
    studio_rows = filter_by_name(studio_rows, term, "name")

    if tab == "artists":
        artist_rows = sort_artists(artist_rows, sort)
    elif tab == "studios":
        studio_rows = sort_studios(studio_rows, sort)

    return {
        "query": term or "",
        "tab": tab,
        "sort": sort,
        "limit": limit,
        "offset": offset,
        "designs": design_rows if tab == "designs" else [],
        "artists": artist_rows[offset : offset + limit] if tab == "artists" else [],
        "studios": studio_rows[offset : offset + limit] if tab == "studios" else [],
        "totals": {
            "designs": design_total,
            "artists": len(artist_rows),
            "studios": len(studio_rows),
        },
    }
