"""AI citation probe.

Asks a web-grounded LLM a few recommendation-seeking questions about the
site's industry and region, and checks whether the site shows up in the
answers.  The probe never raises: individual call failures degrade into
placeholders or canned text.  A missing client, an unreachable or
unauthorised provider, or a run in which no query got an answer yields an
explanatory "could not verify" result instead.
"""

import logging
import re
from typing import List, Optional, Tuple
from urllib.parse import urlparse

from aio_diagnosis.models.ai_check import AICheckResult, CitationQueryResult
from aio_diagnosis.services.llm_client import LLMError, LLMUnavailableError, SearchLLM
from aio_diagnosis.services.rate_limit import DelayPolicy, call_with_retry

logger = logging.getLogger(__name__)

RESPONSE_PREVIEW_CHARS = 500
MIN_TITLE_LENGTH = 3
MAX_SUGGESTIONS = 5

QUERY_TEMPLATES = (
    "{region}で{industry}のおすすめの会社を教えてください",
    "{region}の{industry}について詳しく教えてください",
    "{industry}を{region}で探しています。どこがいいですか？",
)

_BULLET_PREFIXES = ("・", "-", "*")
_BULLET_RE = re.compile(r"^[・\-*]\s*")

ASSESSMENT_PROMPT = """
以下のウェブサイトのAI検索最適化（AIO）の状態を厳しく評価してください。
改善が必要な点を中心に、率直で具体的な指摘をお願いします。
日本語で200文字以内で回答してください。

【評価条件】
- AI検索での引用テスト結果: {total}件の質問中{cited}件でのみ言及あり（{level}）
- 引用されなかった場合は「このままではAI検索で競合に顧客を奪われるリスクが高い」旨を含めてください
- 甘い評価は避け、具体的な問題点と危機感を伝えてください

【サイト情報】
URL: {url}
業種: {industry}
地域: {region}
サイトタイトル: {title}
サイト概要: {description}

評価と改善の緊急性を述べてください。"""

SUGGESTION_PROMPT = """
以下のウェブサイトのAI検索最適化（AIO）のために、最も緊急度の高い改善提案を5つ箇条書きで述べてください。
日本語で回答してください。
AI検索テストでの引用率: {total}件中{cited}件（{percent}%）
具体的で実行可能な提案を、緊急度の高い順に述べてください。

URL: {url}
業種: {industry}
地域: {region}

箇条書きのみで回答してください（「・」で始めてください）"""

FALLBACK_SUGGESTIONS = [
    "【最優先】FAQページを作成し、FAQPage構造化データを実装する",
    "【緊急】業種特有の専門用語を含む詳細なコンテンツを2000文字以上で作成する",
    "【重要】地域名×業種名を含むローカルSEO対策を強化する",
    "【推奨】定期的にコンテンツを更新し、AIが参照する情報の鮮度を維持する",
    "【推奨】業界団体や公的機関からの被リンクを獲得する",
]

UNAVAILABLE_SUGGESTIONS = [
    "【最優先】FAQ構造化データを実装する",
    "【緊急】業種特有の専門コンテンツを充実させる",
    "【重要】地域名を含むローカルSEO対策を行う",
]


def build_queries(industry: str, region: str) -> List[str]:
    return [template.format(industry=industry, region=region) for template in QUERY_TEMPLATES]


def bare_domain(url: str) -> str:
    """Return the hostname of *url* without a leading ``www.``."""
    absolute = url if url.startswith(("http://", "https://")) else f"https://{url}"
    hostname = urlparse(absolute).hostname or ""
    return hostname[4:] if hostname.startswith("www.") else hostname


def is_cited(response: str, domain: str, site_title: str) -> bool:
    """Plain substring match on the bare domain or the site title."""
    if domain and domain in response:
        return True
    return len(site_title) >= MIN_TITLE_LENGTH and site_title in response


def truncate_response(text: str) -> str:
    if len(text) > RESPONSE_PREVIEW_CHARS:
        return text[:RESPONSE_PREVIEW_CHARS] + "..."
    return text


def citation_level(cited: int, total: int) -> str:
    rate = cited / total if total else 0.0
    percent = int(rate * 100 + 0.5)
    if rate == 0:
        return "引用率0%で、AI検索において全く認識されていない深刻な状態です"
    if rate < 0.5:
        return f"引用率{percent}%で、AI検索での認知度は非常に低い状態です"
    if rate < 1.0:
        return f"引用率{percent}%で、一部のクエリでは認識されていますが不十分です"
    return "全てのテスト質問でAIに引用されており、良好な状態です"


def parse_suggestions(text: str) -> List[str]:
    """Extract up to five bullet items ("・", "-" or "*" prefixed lines)."""
    suggestions = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped.startswith(_BULLET_PREFIXES):
            continue
        item = _BULLET_RE.sub("", stripped).strip()
        if item:
            suggestions.append(item)
    return suggestions[:MAX_SUGGESTIONS]


def fallback_assessment(cited: int, total: int) -> str:
    if cited == 0:
        return (
            f"{total}件のAI検索テストで一度も引用されませんでした。"
            "現状のままではAI検索で完全に無視される状態であり、競合他社に顧客を奪われるリスクが極めて高いです。"
        )
    return f"{total}件のテスト中{cited}件でサイトが言及されましたが、引用率は不十分です。"


def unavailable_result() -> AICheckResult:
    """Result returned when the probe cannot run at all."""
    return AICheckResult(
        is_cited=False,
        citation_context="AI検索サービスに接続できませんでした。APIキーの設定を確認してください。",
        queries=[],
        overall_assessment="AI引用チェックを実行できませんでした。ANTHROPIC_API_KEYを設定してください。",
        improvement_suggestions=list(UNAVAILABLE_SUGGESTIONS),
        verified=False,
    )


class CitationProber:
    """Runs the citation probe against one :class:`SearchLLM`.

    All LLM calls are strictly sequential; ``policy`` supplies the spacing
    between them and the backoff for rate-limited attempts.
    """

    def __init__(self, client: Optional[SearchLLM], policy: Optional[DelayPolicy] = None):
        self.client = client
        self.policy = policy or DelayPolicy()

    async def _generate(self, prompt: str, grounding: bool) -> str:
        return await call_with_retry(
            lambda: self.client.generate(prompt, grounding=grounding), self.policy
        )

    async def _probe_query(
        self, query: str, domain: str, site_title: str
    ) -> Tuple[CitationQueryResult, bool]:
        """Ask one query; the flag is False when no answer came back."""
        try:
            response = await self._generate(query, grounding=True)
        except LLMUnavailableError:
            raise
        except LLMError as exc:
            logger.warning("Citation query failed (%s): %s", query, exc)
            placeholder = CitationQueryResult(
                query=query,
                response=f"（API応答エラー: {str(exc) or '不明なエラー'}）",
                cited=False,
            )
            return placeholder, False
        result = CitationQueryResult(
            query=query,
            response=truncate_response(response),
            cited=is_cited(response, domain, site_title),
        )
        return result, True

    async def _assess(self, prompt: str, cited: int, total: int) -> str:
        await self.policy.pause()
        try:
            return await self._generate(prompt, grounding=False)
        except LLMError as exc:
            logger.warning("Overall assessment failed, using fallback: %s", exc)
            return fallback_assessment(cited, total)

    async def _suggest(self, prompt: str) -> List[str]:
        await self.policy.pause()
        try:
            text = await self._generate(prompt, grounding=False)
        except LLMError as exc:
            logger.warning("Improvement suggestions failed, using fallback: %s", exc)
            return list(FALLBACK_SUGGESTIONS)
        return parse_suggestions(text)

    async def _run(
        self, url: str, industry: str, region: str, site_title: str, site_description: str
    ) -> AICheckResult:
        domain = bare_domain(url)
        queries = build_queries(industry, region)

        results: List[CitationQueryResult] = []
        answered = 0
        for index, query in enumerate(queries):
            if index > 0:
                await self.policy.pause()
            result, ok = await self._probe_query(query, domain, site_title)
            results.append(result)
            if ok:
                answered += 1

        if not answered:
            logger.warning("No citation query for %s got an answer; result left unverified", domain)
            return unavailable_result()

        total = len(queries)
        cited = sum(1 for r in results if r.cited)
        level = citation_level(cited, total)

        assessment = await self._assess(
            ASSESSMENT_PROMPT.format(
                total=total,
                cited=cited,
                level=level,
                url=url,
                industry=industry,
                region=region,
                title=site_title,
                description=site_description,
            ),
            cited,
            total,
        )
        suggestions = await self._suggest(
            SUGGESTION_PROMPT.format(
                total=total,
                cited=cited,
                percent=int(cited / total * 100 + 0.5),
                url=url,
                industry=industry,
                region=region,
            )
        )

        logger.info("Citation probe for %s: cited in %d/%d queries", domain, cited, total)
        return AICheckResult(
            is_cited=cited > 0,
            citation_context=f"{total}件のテスト質問中{cited}件でサイトが言及されました（{level}）",
            queries=results,
            overall_assessment=assessment,
            improvement_suggestions=suggestions,
        )

    async def check(
        self, url: str, industry: str, region: str, site_title: str = "", site_description: str = ""
    ) -> AICheckResult:
        """Probe the LLM for citations of *url*; never raises."""
        if self.client is None:
            return unavailable_result()
        try:
            return await self._run(url, industry, region, site_title, site_description)
        except LLMUnavailableError as exc:
            logger.warning("AI citation check unavailable for %s: %s", url, exc)
            return unavailable_result()
        except Exception:
            logger.exception("AI citation check failed for %s", url)
            return unavailable_result()
