from flask import Blueprint, jsonify, request, current_app

from ..services.search_service import TAB_SORTS, build_search_query, parse_search_params, unified_search

search_bp = Blueprint("search", __name__, url_prefix="/api/search")


@search_bp.route("", methods=["GET"])
def search():
    """
    Search designs, artists and studios at once
    ---
    tags:
      - Search
    parameters:
      - {in: query, name: q, type: string}
      - {in: query, name: tab, type: string, enum: [designs, artists, studios], default: designs}
      - {in: query, name: sort, type: string, description: "designs: newest|price_low|price_high|popular; artists: rating|experience|name_asc|name_desc; studios: name_asc|name_desc|artists"}
      - {in: query, name: styles, type: string}
      - {in: query, name: tags, type: string}
      - {in: query, name: min_price, type: number}
      - {in: query, name: max_price, type: number}
      - {in: query, name: color, type: boolean}
      - {in: query, name: location, type: string}
      - {in: query, name: min_rating, type: number}
      - {in: query, name: page, type: integer}
      - {in: query, name: limit, type: integer}
    responses:
      200:
        description: Results for the active tab plus totals for all three
    """
    try:
        params = parse_search_params(request.args)
        results = unified_search(params)

        # canonical query string so the client can keep the URL in sync
        canonical = dict(params, tab=results["tab"], sort=results["sort"])
        results["query_string"] = build_search_query(canonical)
        results["sort_options"] = list(TAB_SORTS[results["tab"]])
        results["status"] = "success"
        return jsonify(results), 200

    except Exception as e:
        current_app.logger.error(f"Search failed: {e}")
        return jsonify({"status": "error", "message": "Database error", "details": str(e)}), 500
