"""YouTube video category ID to label mapping.

The category list is small and static, so it is kept locally instead of
being fetched with ``videoCategories.list`` on every sync.
"""

UNKNOWN_CATEGORY = "Unknown"
UNKNOWN_CATEGORY_ID = "unknown"

CATEGORY_MAP: dict[str, str] = {
    "1": "Film & Animation",
    "2": "Autos & Vehicles",
    "10": "Music",
    "15": "Pets & Animals",
    "17": "Sports",
    "18": "Short Movies",
    "19": "Travel & Events",
    "20": "Gaming",
    "21": "Videoblogging",
    "22": "People & Blogs",
    "23": "Comedy",
    "24": "Entertainment",
    "25": "News & Politics",
    "26": "Howto & Style",
    "27": "Education",
    "28": "Science & Technology",
    "29": "Nonprofits & Activism",
    "30": "Movies",
    "31": "Anime/Animation",
    "32": "Action/Adventure",
    "33": "Classics",
    "34": "Comedy",
    "35": "Documentary",
    "36": "Drama",
    "37": "Family",
    "38": "Foreign",
    "39": "Horror",
    "40": "Sci-Fi/Fantasy",
    "41": "Thriller",
    "42": "Shorts",
    "43": "Shows",
    "44": "Trailers",
}


def get_category_label(category_id: str | None) -> str:
    """Return the human-readable label for a category ID, or "Unknown"."""
    if not category_id:
        return UNKNOWN_CATEGORY
    return CATEGORY_MAP.get(category_id, UNKNOWN_CATEGORY)
