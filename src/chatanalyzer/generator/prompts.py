"""Prompt construction for the text generator."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, tzinfo

from chatanalyzer.models.message import Message
from chatanalyzer.models.statistics import Statistics

NO_CONVERSATION = "会話データがありません。"

PROMPT_TEMPLATE = """
あなたはLINEグループの会話データを分析するAIアシスタントです。
以下の会話データを基に、ユーザーの質問に回答してください。

【会話データ】
{conversation}

【質問】
{question}

【回答の指示】
- 会話データに基づいて具体的に回答してください
- データが不足している場合は、その旨を明記してください
- 統計情報がある場合は、数値も含めて回答してください
- 日本語で自然な文章で回答してください
- 回答は簡潔で分かりやすくしてください

【回答】
"""

STATISTICS_PROMPT_TEMPLATE = """
以下のLINEグループの統計情報を分析してください：

【統計情報】
- 総メッセージ数: {total_messages}
- 参加者数: {unique_participants}
- 期間: {start} から {end}
- 最もアクティブなユーザー: {most_active_user}
- 1日あたりの平均メッセージ数: {average_messages_per_day}

【分析の指示】
- このグループの特徴を分析してください
- 活動レベルについて評価してください
- 改善点があれば提案してください
- 日本語で自然な文章で回答してください

【分析結果】
"""

TOPIC_PROMPT_TEMPLATE = """
以下の会話データから「{topic}」に関する分析を行ってください：

【会話データ】
{conversation}

【分析の指示】
- 「{topic}」に関する言及を抽出してください
- どのような文脈で話題に上がっているか分析してください
- 参加者の反応や意見を分析してください
- 話題の頻度や重要度を評価してください
- 日本語で自然な文章で回答してください

【分析結果】
"""

SENTIMENT_PROMPT_TEMPLATE = """
以下の会話データの感情分析を行ってください：

【会話データ】
{conversation}

【分析の指示】
- 全体的な会話の雰囲気を分析してください
- 感情的な表現や反応を分析してください
- グループの関係性について分析してください
- ポジティブ・ネガティブな要素を抽出してください
- 日本語で自然な文章で回答してください

【分析結果】
"""

# Shown for statistics fields that an empty message set leaves unset.
UNKNOWN = "不明"


def format_timestamp(timestamp: int, tz: tzinfo | None = None) -> str:
    """Render epoch milliseconds as ``YYYY/M/D H:MM:SS``."""
    dt = datetime.fromtimestamp(timestamp / 1000, tz=tz)
    return f"{dt.year}/{dt.month}/{dt.day} {dt.hour}:{dt.minute:02d}:{dt.second:02d}"


def format_messages_for_prompt(messages: Sequence[Message], tz: tzinfo | None = None) -> str:
    """Render messages as numbered lines, oldest first.

    The input is not modified.
    """
    if not messages:
        return NO_CONVERSATION
    ordered = sorted(messages, key=lambda m: m.timestamp)
    return "\n".join(
        f"{index}. [{format_timestamp(m.timestamp, tz)}] ユーザー{m.display_name}: {m.text}"
        for index, m in enumerate(ordered, 1)
    )


def build_prompt(question: str, messages: Sequence[Message], tz: tzinfo | None = None) -> str:
    return PROMPT_TEMPLATE.format(
        conversation=format_messages_for_prompt(messages, tz),
        question=question,
    )


def build_statistics_prompt(stats: Statistics) -> str:
    """Prompt asking for a qualitative reading of precomputed statistics."""
    return STATISTICS_PROMPT_TEMPLATE.format(
        total_messages=stats.total_messages,
        unique_participants=stats.unique_participants,
        start=stats.date_range.start or UNKNOWN,
        end=stats.date_range.end or UNKNOWN,
        most_active_user=stats.most_active_user or UNKNOWN,
        average_messages_per_day=stats.average_messages_per_day,
    )


def build_topic_prompt(topic: str, messages: Sequence[Message], tz: tzinfo | None = None) -> str:
    return TOPIC_PROMPT_TEMPLATE.format(
        topic=topic,
        conversation=format_messages_for_prompt(messages, tz),
    )


def build_sentiment_prompt(messages: Sequence[Message], tz: tzinfo | None = None) -> str:
    return SENTIMENT_PROMPT_TEMPLATE.format(conversation=format_messages_for_prompt(messages, tz))
