def page_args(args, default_limit=10):
    try:
        page = max(int(args.get("page") or 1), 1)
        limit = max(int(args.get("limit") or default_limit), 1)
    except ValueError:
        page, limit = 1, default_limit
    return page, limit

def paginate_query(query, page, limit):
    items = query.offset((page-1)*limit).limit(limit).all()
    total = query.order_by(None).count()
    total_pages = (total + limit - 1) // limit
    return items, {"total": total, "page": page, "limit": limit, "total_pages": total_pages}
