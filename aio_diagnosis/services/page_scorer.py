"""Per-page scoring for the page-by-page report table.

The checklist is independent of the site-level axes and uses its own weights;
a page can earn at most 100 points.
"""

from typing import List, Sequence

from aio_diagnosis.models.page import PageRecord
from aio_diagnosis.models.score import PageScore

MAX_PAGE_SCORE = 100
UNTITLED = "(タイトルなし)"


def score_page(page: PageRecord) -> PageScore:
    score = 0
    issues: List[str] = []

    if page.title:
        score += 8
    else:
        issues.append("タイトル未設定")

    if page.meta_description:
        score += 8
    else:
        issues.append("メタディスクリプション未設定")

    h1_count = len(page.headings.h1)
    if h1_count == 1:
        score += 8
    elif h1_count == 0:
        issues.append("H1タグ未設定")
    else:
        issues.append("H1タグが複数設定")

    h2_count = len(page.headings.h2)
    if h2_count >= 3:
        score += 5
    elif h2_count > 0:
        score += 2
    else:
        issues.append("H2タグ未設定")

    og_count = len(page.og_tags)
    if og_count >= 4:
        score += 8
    elif og_count >= 3:
        score += 4
    else:
        issues.append("OGPタグ不足")

    sd_count = len(page.structured_data)
    if sd_count >= 2:
        score += 10
    elif sd_count > 0:
        score += 4
    else:
        issues.append("構造化データ未設定")

    if page.canonical:
        score += 4
    else:
        issues.append("canonical未設定")

    if page.viewport:
        score += 4
    else:
        issues.append("viewport未設定")

    if page.word_count >= 2000:
        score += 10
    elif page.word_count >= 1000:
        score += 5
    elif page.word_count >= 500:
        score += 2
    else:
        issues.append("テキスト量不足")

    # Pages without images are neither rewarded nor penalised here
    if page.images:
        with_alt = sum(1 for image in page.images if image.alt)
        if with_alt == len(page.images):
            score += 5
        else:
            issues.append(f"画像alt属性: {with_alt}/{len(page.images)}設定済み")

    if page.has_ssl:
        score += 8
    else:
        issues.append("SSL未対応")

    if page.lang:
        score += 4
    else:
        issues.append("lang属性未設定")

    link_count = len(page.internal_links)
    if link_count >= 5:
        score += 5
    elif link_count >= 3:
        score += 2
    else:
        issues.append("内部リンク不足")

    if page.has_faq:
        score += 8
    else:
        issues.append("FAQ構造なし")

    return PageScore(
        url=page.url,
        title=page.title or UNTITLED,
        score=min(score, MAX_PAGE_SCORE),
        issues=issues,
    )


def calculate_page_scores(pages: Sequence[PageRecord]) -> List[PageScore]:
    return [score_page(page) for page in pages]
