"""Rule-based AIO scoring engine.

Five independent analyzers each read the full page list and return a
:class:`ScoreDetail` worth at most 20 points.  Every heuristic that does not
award its points records why in ``issues`` and/or what to do about it in
``recommendations``; those lists are the qualitative part of the report.

All functions here are pure: scoring the same pages twice yields identical
results.
"""

import re
from typing import Iterable, List, Sequence, Set, Tuple

from aio_diagnosis.models.page import PageRecord
from aio_diagnosis.models.score import (
    MAX_AXIS_SCORE,
    AnalysisResult,
    Rank,
    ScoreBreakdown,
    ScoreDetail,
    ScoreDetails,
)
from aio_diagnosis.services.page_scorer import calculate_page_scores

# (min_total_score, rank), checked top-down
RANK_THRESHOLDS: Tuple[Tuple[int, Rank], ...] = (
    (90, "A"),
    (75, "B"),
    (55, "C"),
    (35, "D"),
)

# Comment tiers shared by every axis: >=16, >=12, >=7, else
_TIER_THRESHOLDS = (16, 12, 7)

_DEFINITION_MARKERS = ("とは", "について", "特徴", "メリット", "サービス内容")
_SPECIFIC_DATA_RE = re.compile(r"\d+[%年月万円件]")
_DATE_RE = re.compile(r"20\d{2}[年/\-]")


def calculate_rank(total_score: int) -> Rank:
    for threshold, rank in RANK_THRESHOLDS:
        if total_score >= threshold:
            return rank
    return "E"


def _comment(score: int, tiers: Tuple[str, str, str, str]) -> str:
    for threshold, text in zip(_TIER_THRESHOLDS, tiers):
        if score >= threshold:
            return text
    return tiers[-1]


def _clamp(score: int) -> int:
    return min(max(score, 0), MAX_AXIS_SCORE)


def _ratio(count: int, pages: Sequence[PageRecord]) -> float:
    return count / max(len(pages), 1)


def _percent(rate: float) -> int:
    return int(rate * 100 + 0.5)


def _schema_types(pages: Iterable[PageRecord]) -> Set[str]:
    """Collect every ``@type`` declared at the top level of the JSON-LD blocks."""
    types: Set[str] = set()
    for page in pages:
        for block in page.structured_data:
            if not isinstance(block, dict):
                continue
            declared = block.get("@type")
            if isinstance(declared, str) and declared:
                types.add(declared)
            elif isinstance(declared, list):
                types.update(t for t in declared if isinstance(t, str) and t)
    return types


def _detail(
    score: int,
    label: str,
    tiers: Tuple[str, str, str, str],
    issues: List[str],
    recommendations: List[str],
) -> ScoreDetail:
    clamped = _clamp(score)
    return ScoreDetail(
        score=clamped,
        label=label,
        comment=_comment(clamped, tiers),
        issues=issues,
        recommendations=recommendations,
    )


# ---------------------------------------------------------------------------
# Structured data
# ---------------------------------------------------------------------------

def analyze_structured_data(pages: Sequence[PageRecord]) -> ScoreDetail:
    score = 0
    issues: List[str] = []
    recommendations: List[str] = []

    if any(p.structured_data for p in pages):
        score += 4
        total_blocks = sum(len(p.structured_data) for p in pages)
        if total_blocks >= 5:
            score += 3
        elif total_blocks >= 3:
            score += 1
        else:
            issues.append(
                f"構造化データの総数が{total_blocks}件と少なく、AI検索への訴求力が弱い状態です"
            )
    else:
        issues.append("構造化データ（JSON-LD）が検出されませんでした。AI検索では致命的な欠落です")
        recommendations.append(
            "Schema.orgに基づくJSON-LDマークアップを早急に追加してください（Organization、LocalBusiness、FAQ等）"
        )

    types = _schema_types(pages)
    if len(types) >= 4:
        score += 4
    elif len(types) == 3:
        score += 3
    elif len(types) == 2:
        score += 2
    elif len(types) == 1:
        score += 1
    if len(types) < 3:
        issues.append(
            f"構造化データの種類が{len(types)}種類のみです。AI検索で競合に大きく差をつけられています"
        )
        recommendations.append(
            "Organization、BreadcrumbList、FAQPage、Product、LocalBusiness等の複数の構造化データを実装してください"
        )

    if "FAQPage" in types or "Question" in types:
        score += 5
    else:
        issues.append("FAQスキーマが未実装です。AIが回答を直接引用する最も重要な要素が欠けています")
        recommendations.append(
            "FAQPageスキーマを実装してください。AI検索での引用確率を劇的に向上させる最重要施策です"
        )

    if "BreadcrumbList" in types:
        score += 2
    else:
        recommendations.append("BreadcrumbList構造化データを追加し、サイト階層をAIに正しく伝えてください")

    if "LocalBusiness" in types or "Organization" in types:
        score += 2
    else:
        issues.append("LocalBusinessまたはOrganization構造化データが未実装です")
        recommendations.append(
            "LocalBusiness構造化データを追加し、住所・電話番号・営業時間等をマークアップしてください"
        )

    return _detail(
        score,
        "構造化データ",
        (
            "構造化データが充実しており、AI検索に最適化されています",
            "構造化データは実装されていますが、種類や網羅性に改善の余地があります",
            "構造化データの実装が不十分です。AI検索での可視性が大幅に制限されています",
            "構造化データがほぼ未実装です。このままではAI検索で認識されず、競合に完全に埋もれます",
        ),
        issues,
        recommendations,
    )


# ---------------------------------------------------------------------------
# Content quality
# ---------------------------------------------------------------------------

def _title_matches_h1(page: PageRecord) -> bool:
    if not page.headings.h1 or not page.title:
        return False
    h1_text = page.headings.h1[0].lower()
    return any(len(word) > 2 and word in h1_text for word in page.title.lower().split())


def analyze_content_quality(pages: Sequence[PageRecord]) -> ScoreDetail:
    score = 0
    issues: List[str] = []
    recommendations: List[str] = []

    avg_chars = sum(p.word_count for p in pages) / max(len(pages), 1)
    if avg_chars >= 3000:
        score += 5
    elif avg_chars >= 2000:
        score += 3
    elif avg_chars >= 1000:
        score += 2
    elif avg_chars >= 500:
        score += 1
    else:
        issues.append(
            f"平均テキスト量が{int(avg_chars + 0.5)}文字と大幅に不足しています。AI検索が参照するには情報量が圧倒的に足りません"
        )
    if avg_chars < 2000:
        recommendations.append(
            "各ページに最低2000文字以上の専門的で有益なコンテンツを追加してください。AIが引用元として選ぶには十分な情報量が必要です"
        )

    h1_rate = _ratio(sum(1 for p in pages if p.headings.h1), pages)
    if h1_rate >= 1.0:
        score += 3
    elif h1_rate >= 0.8:
        score += 2
    elif h1_rate >= 0.5:
        score += 1
    else:
        issues.append(
            f"H1タグが設定されているページが{_percent(h1_rate)}%のみです。基本的なSEO対策ができていません"
        )
    if h1_rate < 1.0:
        recommendations.append("全ページにH1タグを必ず設定してください。AIがページの主題を理解する上で不可欠です")

    h2_rate = _ratio(sum(1 for p in pages if p.headings.h2), pages)
    if h2_rate >= 0.8:
        score += 3
    elif h2_rate >= 0.5:
        score += 1
    else:
        issues.append("H2タグによるコンテンツ構造化が大幅に不足しています。AIが情報を抽出できない状態です")
    if h2_rate < 0.8:
        recommendations.append(
            "H2・H3タグで情報を階層的に整理してください。AIが段落ごとに情報を理解・引用しやすくなります"
        )

    multiple_h1 = sum(1 for p in pages if len(p.headings.h1) > 1)
    if multiple_h1:
        score -= 1
        issues.append(
            f"{multiple_h1}ページでH1タグが複数設定されています。ページの主題がAIに正しく伝わりません"
        )
        recommendations.append("各ページのH1タグは1つに統一してください。複数あるとAIが主題を誤認します")
    else:
        score += 2

    if all(p.title for p in pages):
        score += 2
    else:
        issues.append("タイトルが設定されていないページがあります。最も基本的なSEO要素が欠けています")
        recommendations.append("全ページに固有で描写的なタイトルを設定してください")

    titles = [p.title for p in pages if p.title]
    if len(set(titles)) == len(titles):
        score += 2
    else:
        issues.append("重複するタイトルが検出されました。AIがページを区別できず、引用対象から外れやすくなります")
        recommendations.append("各ページに固有のタイトルを設定してください。同じタイトルはAI検索でマイナス評価です")

    if any(_title_matches_h1(p) for p in pages):
        score += 3
    else:
        issues.append("タイトルとH1の関連性が低く、AIがページの主題を正確に理解できていない可能性があります")

    return _detail(
        score,
        "コンテンツ品質",
        (
            "コンテンツの品質と構造が優れており、AIが情報を抽出しやすい状態です",
            "コンテンツの基本は整っていますが、量と構造の両面で改善の余地があります",
            "コンテンツの品質・構造に複数の問題があり、AI検索での評価が低い状態です",
            "コンテンツの品質が大幅に不足しています。このままではAI検索で引用される見込みはほぼありません",
        ),
        issues,
        recommendations,
    )


# ---------------------------------------------------------------------------
# Technical SEO
# ---------------------------------------------------------------------------

def analyze_technical_seo(pages: Sequence[PageRecord]) -> ScoreDetail:
    score = 0
    issues: List[str] = []
    recommendations: List[str] = []

    desc_rate = _ratio(sum(1 for p in pages if p.meta_description), pages)
    if desc_rate >= 1.0:
        score += 3
    elif desc_rate >= 0.8:
        score += 2
    elif desc_rate >= 0.5:
        score += 1
    else:
        issues.append(
            f"メタディスクリプションが設定されているページが{_percent(desc_rate)}%のみです。AIがページ内容を要約する手がかりが不足しています"
        )
    if desc_rate < 1.0:
        recommendations.append(
            "全ページにメタディスクリプションを設定してください（120〜160文字推奨）。AIの要約精度に直接影響します"
        )

    ogp_rate = _ratio(sum(1 for p in pages if len(p.og_tags) >= 3), pages)
    if ogp_rate >= 0.8:
        score += 3
    elif ogp_rate >= 0.5:
        score += 1
    else:
        issues.append("OGPタグ（Open Graph Protocol）の設定が不十分です。SNSやAI検索での表示品質が低下します")
    if ogp_rate < 0.8:
        recommendations.append("og:title, og:description, og:image, og:url を全ページに設定してください")

    canonical_rate = _ratio(sum(1 for p in pages if p.canonical), pages)
    if canonical_rate >= 0.8:
        score += 2
    elif canonical_rate >= 0.5:
        score += 1
    else:
        issues.append("canonicalタグが未設定のページが多数あります。重複コンテンツとみなされるリスクがあります")
        recommendations.append("重複コンテンツを防ぐため、全ページにcanonicalタグを設定してください")

    if all(p.viewport for p in pages):
        score += 3
    else:
        issues.append(
            "viewportメタタグが未設定のページがあります。モバイル対応が不完全でAI検索での評価が下がります"
        )
        recommendations.append(
            "全ページにviewportメタタグを設定してください。モバイルフレンドリーはAI検索の重要な評価基準です"
        )

    if all(p.has_ssl for p in pages):
        score += 3
    else:
        issues.append("HTTPSに対応していないページがあります。セキュリティの欠如はAIの信頼性評価に直接マイナスです")
        recommendations.append("SSL証明書を導入し、全ページをHTTPS化してください。AI検索は安全なサイトを優先します")

    if any(p.lang for p in pages):
        score += 2
    else:
        issues.append("html要素にlang属性が設定されていません。AIが言語を正しく判定できません")
        recommendations.append('<html lang="ja">を設定してください')

    total_images = sum(len(p.images) for p in pages)
    images_with_alt = sum(1 for p in pages for image in p.images if image.alt)
    alt_rate = images_with_alt / total_images if total_images else 1.0
    if alt_rate >= 0.95:
        score += 2
    elif alt_rate >= 0.7:
        score += 1
    else:
        issues.append(
            f"画像のalt属性設定率が{_percent(alt_rate)}%と低いです。AIがコンテンツを正しく理解できません"
        )
        recommendations.append(
            "全画像に描写的なalt属性を設定してください。AIの画像理解とアクセシビリティ向上に不可欠です"
        )

    if any(p.charset for p in pages):
        score += 2
    else:
        issues.append("charset（文字エンコーディング）が指定されていません")

    return _detail(
        score,
        "技術的最適化",
        (
            "技術的なSEO対策が十分に行われています",
            "基本的な技術対策はされていますが、不足している重要項目があります",
            "技術的な最適化に複数の重大な問題点があり、AI検索での評価が大幅に低下しています",
            "技術的な最適化が致命的に不足しています。早急な対応が必要です",
        ),
        issues,
        recommendations,
    )


# ---------------------------------------------------------------------------
# Authority / trust
# ---------------------------------------------------------------------------

def _is_about_page(page: PageRecord) -> bool:
    return (
        "about" in page.url
        or "company" in page.url
        or any(k in page.title for k in ("会社概要", "企業情報", "About"))
    )


def _is_privacy_page(page: PageRecord) -> bool:
    return (
        "privacy" in page.url
        or "policy" in page.url
        or any(k in page.title for k in ("プライバシー", "個人情報"))
    )


def analyze_authority(pages: Sequence[PageRecord]) -> ScoreDetail:
    score = 0
    issues: List[str] = []
    recommendations: List[str] = []

    if all(p.has_ssl for p in pages):
        score += 3
    else:
        issues.append("HTTPS化されていないページがあり、信頼性が大幅に低下しています")
        recommendations.append("全ページをHTTPS化してください。AI検索はセキュアなサイトを優先的に引用します")

    if any(p.has_contact_info for p in pages):
        score += 3
    else:
        issues.append("お問い合わせ情報が見つかりません。事業者の実在性が確認できず信頼性が低い状態です")
        recommendations.append("連絡先情報（メール、問い合わせフォーム）を明示してください")

    if any(p.has_address for p in pages):
        score += 3
    else:
        issues.append("所在地・住所情報が見つかりません。ローカルビジネスとしてAIに認識されません")
        recommendations.append("会社の所在地を明記し、LocalBusiness構造化データに含めてください")

    if any(p.has_phone for p in pages):
        score += 2
    else:
        issues.append("電話番号が見つかりません。実在する事業者であることの証明が弱い状態です")
        recommendations.append("電話番号を掲載し、tel:リンクを設定してください")

    external_links = sum(len(p.external_links) for p in pages)
    if external_links >= 10:
        score += 2
    elif external_links >= 5:
        score += 1
    else:
        issues.append("外部の権威あるサイトへのリンクが少なく、コンテンツの裏付けが弱い状態です")
        recommendations.append(
            "信頼できる外部サイト（業界団体、公的機関等）へのリンクを追加すると権威性が向上します"
        )

    if len(pages) >= 15:
        score += 3
    elif len(pages) >= 10:
        score += 2
    elif len(pages) >= 5:
        score += 1
    else:
        issues.append(
            f"クロール可能なページ数が{len(pages)}ページと大幅に不足しています。サイトの情報量がAI検索の要求を満たしていません"
        )
        recommendations.append(
            "最低でも10ページ以上のコンテンツを用意し、サイトの専門性と情報量をアピールしてください"
        )

    if any(_is_about_page(p) for p in pages):
        score += 2
    else:
        issues.append("会社概要ページが見つかりません。E-E-A-T（信頼性）の観点で大きなマイナスです")
        recommendations.append(
            "会社概要ページを作成し、代表者名・設立年・実績等を明記してください。AIは信頼性の高いソースを優先します"
        )

    if any(_is_privacy_page(p) for p in pages):
        score += 2
    else:
        issues.append("プライバシーポリシーページが見つかりません。信頼性と法的コンプライアンスの面で問題があります")
        recommendations.append("プライバシーポリシーページを作成してください")

    return _detail(
        score,
        "権威性・信頼性",
        (
            "権威性と信頼性を示す情報が十分に揃っています",
            "基本的な信頼性情報はありますが、E-E-A-Tの観点で補強が必要です",
            "信頼性を示す情報が不足しており、AIが引用元として選びにくい状態です",
            "権威性・信頼性の情報が致命的に不足しています。AI検索で引用される可能性は極めて低いです",
        ),
        issues,
        recommendations,
    )


# ---------------------------------------------------------------------------
# AI readiness
# ---------------------------------------------------------------------------

def analyze_ai_readiness(pages: Sequence[PageRecord]) -> ScoreDetail:
    score = 0
    issues: List[str] = []
    recommendations: List[str] = []

    if any(p.has_faq for p in pages):
        score += 4
    else:
        issues.append("FAQ（よくある質問）コンテンツが見つかりません。AIO対策の最重要要素が欠けています")
        recommendations.append(
            "FAQページを作成し、FAQPage構造化データ付きで実装してください。AIが回答を生成する際に直接引用される最も効果的な対策です"
        )

    well_structured = sum(1 for p in pages if len(p.headings.h2) >= 3 and p.word_count >= 800)
    structure_rate = _ratio(well_structured, pages)
    if structure_rate >= 0.6:
        score += 4
    elif structure_rate >= 0.3:
        score += 2
    else:
        issues.append("AIが要約しやすいコンテンツ構造になっているページがほとんどありません")
        recommendations.append("H2見出しで段落を区切り、各セクションに800文字以上の充実した内容を配置してください")

    if any(any(m in p.text_content.lower() for m in _DEFINITION_MARKERS) for p in pages):
        score += 2
    else:
        issues.append("「〇〇とは」のような定義・説明コンテンツが見当たりません")
        recommendations.append(
            "「〇〇とは」のような明確な定義・説明コンテンツを追加してください。AIが直接引用しやすい形式です"
        )

    if any("・" in p.text_content or len(p.headings.h3) >= 3 for p in pages):
        score += 2
    else:
        issues.append("箇条書き・リスト形式のコンテンツがありません")
        recommendations.append("情報を箇条書きやリスト形式で整理すると、AIが情報を抽出しやすくなります")

    if any(_SPECIFIC_DATA_RE.search(p.text_content) for p in pages):
        score += 2
    else:
        issues.append("具体的な数値データ（実績数、年数等）がありません。AIは具体性の高い情報を優先します")
        recommendations.append("具体的な数値データ（実績数、年数等）を掲載すると、AIの回答に引用されやすくなります")

    images_per_page = _ratio(sum(len(p.images) for p in pages), pages)
    total_text = sum(p.word_count for p in pages)
    if total_text > 0 and images_per_page <= 20:
        score += 2
    elif total_text == 0:
        issues.append("テキストコンテンツが検出されませんでした。AIはテキスト情報を重視します")
    else:
        issues.append("画像が多くテキストの比率が低い可能性があります。AIはテキスト情報を重視します")

    avg_internal = _ratio(sum(len(p.internal_links) for p in pages), pages)
    if avg_internal >= 8:
        score += 3
    elif avg_internal >= 5:
        score += 2
    elif avg_internal >= 3:
        score += 1
    else:
        issues.append("内部リンクが大幅に不足しています。AIがサイト全体の情報を把握できない状態です")
        recommendations.append("関連ページ同士を内部リンクで密接に接続してください。AIがサイト全体を巡回しやすくなります")

    if any(_DATE_RE.search(p.text_content) for p in pages):
        score += 1
    else:
        issues.append("コンテンツに日付情報がなく、情報の鮮度が不明です。AIは最新の情報を優先的に引用します")
        recommendations.append("コンテンツに更新日や公開日を明記し、定期的にコンテンツを更新してください")

    return _detail(
        score,
        "AI対応度",
        (
            "AI検索に最適化されたコンテンツ構造です",
            "AI対応の基本はできていますが、引用率を上げるにはさらなる最適化が必要です",
            "AI検索への対応が不十分です。このままでは競合にAI検索の顧客を奪われるリスクがあります",
            "AI検索で引用される可能性が極めて低い状態です。根本的な対策が急務です",
        ),
        issues,
        recommendations,
    )


def analyze_pages(pages: Sequence[PageRecord]) -> AnalysisResult:
    """Score *pages* on all five axes and aggregate the baseline result."""
    details = ScoreDetails(
        structured_data=analyze_structured_data(pages),
        content_quality=analyze_content_quality(pages),
        technical_seo=analyze_technical_seo(pages),
        authority=analyze_authority(pages),
        ai_readiness=analyze_ai_readiness(pages),
    )
    scores = ScoreBreakdown(
        structured_data=details.structured_data.score,
        content_quality=details.content_quality.score,
        technical_seo=details.technical_seo.score,
        authority=details.authority.score,
        ai_readiness=details.ai_readiness.score,
    )
    total_score = scores.total
    return AnalysisResult(
        total_score=total_score,
        rank=calculate_rank(total_score),
        scores=scores,
        score_details=details,
        page_scores=calculate_page_scores(pages),
    )
