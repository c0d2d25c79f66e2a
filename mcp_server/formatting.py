"""
Rich text formatting for MCP tool outputs.

Transforms raw API responses into human-readable chat-friendly formats.
"""

# Label emoji mapping
LABEL_EMOJI = {
    "Hope": "🌅",
    "Fear": "😨",
    "Determination": "💪",
    "Neutral": "➖",
    "Skip": "⏭️",
}

STATUS_EMOJI = {
    "open": "🟡",
    "resolved": "🟢",
    "needs_review": "🔴",
}


def label_with_emoji(label: str) -> str:
    return f"{LABEL_EMOJI.get(label, '❓')} {label}"


def bar(fraction: float, width: int = 10) -> str:
    """Horizontal bar for a value in [0, 1]."""
    filled = max(0, min(width, int(round(fraction * width))))
    return "█" * filled + "░" * (width - filled)


def format_comment_display(comment: dict, position: int = None, remaining: int = None) -> str:
    """
    Format a comment for chat display.

    Args:
        comment: Batch entry or comment detail (needs 'id' and 'text')
        position: Optional 1-based position in the current batch
        remaining: Optional number of comments still queued
    """
    comment_id = comment.get("id", "unknown")
    lines = []

    header = f"💬 Comment {comment_id}"
    if position is not None:
        header += f" (#{position})"
    lines.append(header)
    lines.append("═" * 50)
    lines.append("")
    lines.append(f"   {comment.get('text', '(empty)')}")
    lines.append("")

    status = comment.get("status")
    if status:
        lines.append(f"{STATUS_EMOJI.get(status, '❓')} Status: {status} ({comment.get('label_count', 0)} labels)")
        if comment.get("final_label"):
            lines.append(f"🏷️ Final label: {label_with_emoji(comment['final_label'])}")

    if remaining is not None:
        lines.append(f"📥 {remaining} more in this batch")

    lines.append("═" * 50)
    return "\n".join(lines)


def format_comment_detail(detail: dict) -> str:
    """Format a comment with its labels and agreement diagnostics."""
    lines = [format_comment_display(detail)]

    labels = detail.get("labels", [])
    if labels:
        lines.append("")
        lines.append("🏷️ **Labels:**")
        for label in labels:
            lines.append(f"   • {label.get('annotator_name', '?')}: {label_with_emoji(label.get('label', '?'))}")

    agreement_pct = detail.get("agreement_pct")
    if agreement_pct is not None:
        lines.append("")
        lines.append(f"📊 Agreement: {bar(agreement_pct / 100)} {agreement_pct}%")
        lines.append(f"   Majority: {label_with_emoji(detail.get('majority_label') or '?')}")
        kappa = detail.get("kappa")
        lines.append(f"   Fleiss' Kappa: {kappa:.3f}" if kappa is not None else "   Fleiss' Kappa: n/a")

    return "\n".join(lines)


def format_submission_result(result: dict, label: str, session_labeled: int = 0) -> str:
    """Format label submission result."""
    status = result.get("status", "unknown")
    lines = [
        f"✅ **Label Submitted** - {result.get('id', '?')}: {label_with_emoji(label)}",
        f"   {STATUS_EMOJI.get(status, '❓')} Comment is now {status} ({result.get('label_count', 0)} labels)",
    ]
    if result.get("final_label"):
        lines.append(f"   Consensus: {label_with_emoji(result['final_label'])}")
    lines.append(f"   Session total: {session_labeled} labeled")
    return "\n".join(lines)


def format_session_stats(stats: dict) -> str:
    """Format session statistics."""
    lines = []

    current_id = stats.get("current_comment_id")

    lines.append("📊 **Session Statistics**")
    lines.append("─" * 30)
    lines.append(f"✅ Labeled: {stats.get('labels_submitted', 0)}")
    lines.append(f"⏭️ Skipped: {stats.get('comments_skipped', 0)}")
    lines.append(f"📥 Queued: {stats.get('queued_comments', 0)}")
    lines.append(f"📝 Current: {current_id or '(none)'}")

    tally = stats.get("label_tally", {})
    if tally:
        lines.append("")
        for label, count in sorted(tally.items(), key=lambda item: -item[1]):
            lines.append(f"   {label_with_emoji(label)}: {count}")

    lines.append(f"🕐 Started: {stats.get('session_started', 'unknown')}")
    return "\n".join(lines)


def format_kappa(data: dict) -> str:
    """Format corpus-wide Fleiss' Kappa."""
    lines = ["📐 **Inter-rater Reliability**", "═" * 40]

    kappa = data.get("overall_kappa")
    if kappa is None:
        lines.append(data.get("message") or "Not enough data yet.")
        return "\n".join(lines)

    lines.append(f"Fleiss' Kappa: **{kappa:.3f}** ({data.get('interpretation')})")
    lines.append(f"   P̄ = {data.get('p_bar')}, P̄e = {data.get('p_bar_e')}")
    lines.append(f"   {data.get('total_comments', 0)} comments, {data.get('mean_raters', 0)} raters on average")

    distribution = data.get("category_distribution", {})
    if distribution:
        lines.append("")
        for category, pct in distribution.items():
            lines.append(f"   {label_with_emoji(category):<18} {bar(pct / 100)} {pct}%")

    return "\n".join(lines)


def format_annotator_stats(entries: list[dict]) -> str:
    """Format the annotator leaderboard, busiest first."""
    lines = ["🏆 **Annotators**", "═" * 40]

    if not entries:
        lines.append("No labels yet.")
        return "\n".join(lines)

    medals = ["🥇", "🥈", "🥉"]

    for i, entry in enumerate(entries[:10]):  # Top 10
        medal = medals[i] if i < 3 else f"{i+1}."
        rate = entry.get("disagreement_rate")
        gap = entry.get("avg_gap_seconds")

        lines.append(f"{medal} **{entry.get('annotator_name', 'unknown')}** ({entry.get('total_labels', 0)} labels)")
        if rate is None:
            lines.append("   Disagreement: n/a")
        else:
            lines.append(f"   Disagreement: {bar(rate)} {rate:.0%}")
        if gap is not None:
            lines.append(f"   Pace: {gap:.0f}s between labels")

    return "\n".join(lines)


def format_error(message: str) -> str:
    """Format an error message."""
    return f"❌ **Error:** {message}"


def format_label_schema(schema: dict) -> str:
    """Format label schema for display."""
    lines = []

    lines.append("🏷️ **Available Labels**")
    lines.append("─" * 30)

    for label in schema.get("categories", []):
        name = label.get("name", "unknown")
        lines.append(f"• **{label_with_emoji(name)}** {label.get('color', '#888')}")
        if label.get("description"):
            lines.append(f"  {label['description']}")
        if label.get("example"):
            lines.append(f"  e.g. \"{label['example']}\"")

    abstain = schema.get("abstain_label")
    if abstain:
        lines.append("")
        lines.append(f"{label_with_emoji(abstain)}: use when none of the above can be judged")

    return "\n".join(lines)


def format_corpus_stats(stats: dict) -> str:
    """Format corpus counters from the admin stats endpoint."""
    total = stats.get("total_comments", 0)
    lines = ["📚 **Corpus**", "═" * 40]
    lines.append(f"💬 Comments: {total} ({stats.get('total_labels', 0)} labels)")
    lines.append(f"   With 1+ labels: {stats.get('comments_with_at_least_one_label', 0)}")
    lines.append(f"   With 2+ labels: {stats.get('comments_with_at_least_two_labels', 0)}")
    lines.append("")
    for status, key in (
        ("resolved", "resolved_comments"),
        ("needs_review", "needs_review_comments"),
        ("open", "open_comments"),
    ):
        count = stats.get(key, 0)
        fraction = count / total if total else 0
        lines.append(f"{STATUS_EMOJI[status]} {status:<13} {bar(fraction)} {count}")

    agreement = stats.get("agreement") or {}
    rate = agreement.get("agreement_rate")
    lines.append("")
    if rate is None:
        lines.append("🤝 Full agreement: n/a")
    else:
        lines.append(
            f"🤝 Full agreement: {bar(rate)} {rate:.0%} "
            f"({agreement.get('agreement_count', 0)} of "
            f"{agreement.get('agreement_count', 0) + agreement.get('disagreement_count', 0)})"
        )
    return "\n".join(lines)


def format_export_summary(rows: int, output_path: str = None) -> str:
    """Format the result of a CSV export."""
    if output_path:
        return f"📤 Exported {rows} comments to {output_path}"
    return f"📤 Exported {rows} comments"
