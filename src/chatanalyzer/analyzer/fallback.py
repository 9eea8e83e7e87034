"""Deterministic question answering from message statistics.

Used when the text generator is unavailable. Questions are classified by
ordered keyword rules (first match wins) and answered with a fixed Japanese
report built from the statistics.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, tzinfo
from enum import Enum

from chatanalyzer.analyzer.statistics import DEFAULT_TOP_KEYWORDS, compute_statistics
from chatanalyzer.config import DEFAULT_KEYWORD_VOCABULARY
from chatanalyzer.models.message import Message
from chatanalyzer.models.statistics import KeywordCount, Statistics

logger = logging.getLogger(__name__)

NO_DATA_REPORT = "会話データがありません。"


class QuestionIntent(str, Enum):
    TOPIC = "topic"
    USER = "user"
    TIME = "time"
    GENERAL = "general"


# (statistics, sender display names, timezone) -> report
Renderer = Callable[[Statistics, dict[str, str], tzinfo | None], str]


def format_local_date(iso: str, tz: tzinfo | None = None) -> str:
    """Render an ISO timestamp as a Japanese-style date (YYYY/M/D)."""
    dt = datetime.fromisoformat(iso.replace("Z", "+00:00")).astimezone(tz)
    return f"{dt.year}/{dt.month}/{dt.day}"


def _keyword_lines(keywords: Sequence[KeywordCount]) -> list[str]:
    return [f'{index}. "{kw.word}" ({kw.count}回)' for index, kw in enumerate(keywords, 1)]


def _user_label(sender_id: str, names: dict[str, str]) -> str:
    name = names.get(sender_id, sender_id)
    return sender_id if name == sender_id else f"{sender_id} ({name})"


def _totals(stats: Statistics) -> list[str]:
    return [
        f"- 総メッセージ数: {stats.total_messages}件",
        f"- 参加者数: {stats.unique_participants}人",
    ]


def render_topic_report(stats: Statistics, names: dict[str, str], tz: tzinfo | None) -> str:
    lines = ["このグループの話題分析結果です：", "", "【最も使われているキーワード】"]
    if stats.top_keywords:
        lines.extend(_keyword_lines(stats.top_keywords[:5]))
    else:
        lines.append("該当するキーワードはありません")
    lines.extend(["", "【統計情報】", *_totals(stats)])
    return "\n".join(lines) + "\n"


def render_user_report(stats: Statistics, names: dict[str, str], tz: tzinfo | None) -> str:
    lines = ["このグループのユーザー分析結果です：", ""]
    if stats.most_active_user is not None:
        lines.extend(
            [
                "【最もアクティブなユーザー】",
                f"- ユーザーID: {_user_label(stats.most_active_user, names)}",
                f"- メッセージ数: {stats.most_active_user_count}件",
            ]
        )
    lines.extend(
        [
            "",
            "【統計情報】",
            *_totals(stats),
            f"- 平均メッセージ数/人: {stats.average_messages_per_user}件",
        ]
    )
    return "\n".join(lines) + "\n"


def render_time_report(stats: Statistics, names: dict[str, str], tz: tzinfo | None) -> str:
    lines = ["このグループの時間帯分析結果です：", ""]
    if stats.most_active_hour is not None:
        lines.extend(
            [
                "【最も活発な時間帯】",
                f"- 時間: {stats.most_active_hour}時",
                f"- メッセージ数: {stats.most_active_hour_count}件",
            ]
        )
    if stats.date_range.start and stats.date_range.end:
        lines.extend(
            [
                "",
                "【期間】",
                f"- 開始: {format_local_date(stats.date_range.start, tz)}",
                f"- 終了: {format_local_date(stats.date_range.end, tz)}",
                f"- 1日あたりの平均メッセージ数: {stats.average_messages_per_day}件",
            ]
        )
    return "\n".join(lines) + "\n"


def render_general_report(stats: Statistics, names: dict[str, str], tz: tzinfo | None) -> str:
    lines = [
        "このグループの分析結果です：",
        "",
        "【基本統計】",
        *_totals(stats),
        f"- 平均メッセージ数/人: {stats.average_messages_per_user}件",
        f"- 1日あたりの平均メッセージ数: {stats.average_messages_per_day}件",
    ]
    if stats.most_active_user is not None:
        label = _user_label(stats.most_active_user, names)
        lines.append(f"- 最もアクティブなユーザー: {label} ({stats.most_active_user_count}件)")
    if stats.most_active_hour is not None:
        lines.append(
            f"- 最も活発な時間帯: {stats.most_active_hour}時 ({stats.most_active_hour_count}件)"
        )
    if stats.top_keywords:
        lines.extend(["", "【よく使われるキーワード】", *_keyword_lines(stats.top_keywords[:3])])
    return "\n".join(lines) + "\n"


@dataclass(frozen=True)
class IntentRule:
    intent: QuestionIntent
    keywords: tuple[str, ...]
    render: Renderer

    def matches(self, question: str) -> bool:
        return any(keyword in question for keyword in self.keywords)


# Evaluated top-down; keywords are lowercase.
INTENT_RULES: tuple[IntentRule, ...] = (
    IntentRule(
        QuestionIntent.TOPIC,
        ("話題", "キーワード", "トピック", "topic", "keyword", "talk about", "discuss"),
        render_topic_report,
    ),
    IntentRule(
        QuestionIntent.USER,
        ("アクティブ", "活発", "誰", "active", "who", "most messages"),
        render_user_report,
    ),
    IntentRule(
        QuestionIntent.TIME,
        ("時間", "いつ", "何時", "when", "hour", "time"),
        render_time_report,
    ),
    IntentRule(
        QuestionIntent.GENERAL,
        ("統計", "概要", "summary", "overview"),
        render_general_report,
    ),
)

DEFAULT_RULE = IntentRule(QuestionIntent.GENERAL, (), render_general_report)


def match_rule(question: str) -> IntentRule:
    """First rule matching the question, or the general default."""
    folded = question.casefold()
    for rule in INTENT_RULES:
        if rule.matches(folded):
            return rule
    return DEFAULT_RULE


def classify_question(question: str) -> QuestionIntent:
    """Classify a question by the first matching rule (default: general).

    Example:
        >>> classify_question("誰が一番話してる？")
        <QuestionIntent.USER: 'user'>
    """
    return match_rule(question).intent


class FallbackAnalyzer:
    """Answers questions from statistics alone.

    Example:
        ```python
        analyzer = FallbackAnalyzer()
        report = analyzer.analyze("一番アクティブなのは？", messages)
        ```
    """

    def __init__(
        self,
        vocabulary: Sequence[str] = DEFAULT_KEYWORD_VOCABULARY,
        top_n: int = DEFAULT_TOP_KEYWORDS,
        tz: tzinfo | None = None,
    ) -> None:
        self.vocabulary = tuple(vocabulary)
        self.top_n = top_n
        self.tz = tz

    def analyze(self, question: str, messages: Sequence[Message]) -> str:
        """Answer a question about the given messages.

        Returns the no-data report for an empty message set.
        """
        if not messages:
            return NO_DATA_REPORT

        stats = compute_statistics(
            messages, vocabulary=self.vocabulary, top_n=self.top_n, tz=self.tz
        )
        rule = match_rule(question)
        logger.debug(f"Fallback analysis: intent={rule.intent.value}, messages={len(messages)}")
        names = {m.sender_id: m.display_name for m in messages}
        return rule.render(stats, names, self.tz)
