"""목록 조회용 페이지네이션 헬퍼입니다."""

import math


def clamp_page(page: int, limit: int, max_limit: int = 100) -> tuple[int, int]:
    page = max(1, int(page or 1))
    limit = max(1, min(int(limit or 1), max_limit))
    return page, limit


def page_offset(page: int, limit: int) -> int:
    return (page - 1) * limit


def total_pages(total: int, limit: int) -> int:
    if limit <= 0:
        return 0
    return int(math.ceil(total / limit))


def page_meta(total: int, page: int, limit: int) -> dict:
    return {
        "total": int(total),
        "page": page,
        "limit": limit,
        "total_pages": total_pages(total, limit),
    }
