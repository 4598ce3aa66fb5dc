from __future__ import annotations

from collections.abc import Iterable, Sequence

from .models import Bracket, Match, ParticipantRef
from .reporters import ReporterPolicy
from .states import build_bye_match
from .validation import PreconditionFailedError


def round_capacity(labels: Sequence[str], label: str) -> int | None:
    """Competitors a round can hold; the opening round is unbounded."""
    index = _label_index(labels, label)
    if index == 0:
        return None
    return 2 ** (len(labels) - index)


def max_competitors(labels: Sequence[str]) -> int:
    return 2 ** len(labels)


def opening_round_label(labels: Sequence[str], competitor_count: int) -> str:
    if competitor_count == 2:
        return labels[-1]
    return labels[0]


def is_final_round(labels: Sequence[str], label: str, winner_count: int) -> bool:
    return winner_count == 1 or label == labels[-1]


def next_round_label(labels: Sequence[str], current: str, winner_count: int) -> str:
    index = _label_index(labels, current)
    candidates = [
        label
        for label in labels[index + 1 :]
        if (round_capacity(labels, label) or 0) >= winner_count
    ]
    if not candidates:
        raise PreconditionFailedError(
            f"No round after {current} can hold {winner_count} competitors"
        )
    return candidates[-1]


def _label_index(labels: Sequence[str], label: str) -> int:
    try:
        return list(labels).index(label)
    except ValueError as exc:
        raise PreconditionFailedError(f"Unknown round label: {label}") from exc


def pair_round(
    bracket_id: str,
    round_label: str,
    competitors: Sequence[ParticipantRef],
    policy: ReporterPolicy,
    *,
    created_at: str,
) -> list[Match]:
    """Pair competitors in order; an odd trailing competitor gets a bye."""
    matches: list[Match] = []
    for offset in range(0, len(competitors), 2):
        position = offset // 2 + 1
        competitor_one = competitors[offset]
        competitor_two = (
            competitors[offset + 1] if offset + 1 < len(competitors) else None
        )
        if competitor_two is None:
            match = build_bye_match(
                bracket_id,
                round_label,
                position,
                competitor_one,
                created_at=created_at,
            )
            match.reporters = policy.designate(competitor_one, None)
        else:
            match = Match(
                bracket_id=bracket_id,
                round=round_label,
                position=position,
                competitor_one=competitor_one,
                competitor_two=competitor_two,
                reporters=policy.designate(competitor_one, competitor_two),
                created_at=created_at,
            )
        matches.append(match)
    return matches


def group_by_round(
    labels: Sequence[str], matches: Iterable[Match]
) -> list[tuple[str, list[Match]]]:
    grouped: dict[str, list[Match]] = {}
    for match in matches:
        grouped.setdefault(match.round, []).append(match)
    ordered_labels = [label for label in labels if label in grouped]
    ordered_labels.extend(sorted(label for label in grouped if label not in labels))
    return [
        (label, sorted(grouped[label], key=lambda match: match.position))
        for label in ordered_labels
    ]


def find_duplicate_matches(
    labels: Sequence[str], matches: Iterable[Match]
) -> list[Match]:
    """Return matches re-pairing competitors already paired in the same round.

    The earliest created match of each round keeps its competitors; any later
    match sharing one of them is surplus.
    """
    duplicates: list[Match] = []
    for _label, round_matches in group_by_round(labels, matches):
        seen: set[tuple[str, str]] = set()
        for match in sorted(
            round_matches, key=lambda entry: (entry.created_at, entry.position)
        ):
            keys = {(slot.kind, slot.participant_id) for slot in match.competitors()}
            if keys & seen:
                duplicates.append(match)
                continue
            seen.update(keys)
    return duplicates


def _round_title(label: str) -> str:
    return label.replace("_", " ").title()


def render_bracket(bracket: Bracket, matches: Iterable[Match]) -> str:
    lines: list[str] = []
    for label, round_matches in group_by_round(bracket.round_labels, matches):
        lines.append(_round_title(label))
        for match in round_matches:
            lines.append(f"  [{match.match_id}] {match.display()} ({match.status})")
            if match.winner is not None:
                lines.append(f"    -> Winner: {match.winner.display()}")
            elif match.conflict is not None:
                claims = ", ".join(
                    f"{entry.submitter_id} says {entry.claimed_winner_id}"
                    for entry in match.conflict.submissions
                )
                lines.append(f"    -> Conflict: {claims}")
            else:
                lines.append("    -> Winner: TBD")
        lines.append("")
    if lines and not lines[-1]:
        lines.pop()
    if bracket.winner is not None:
        lines.append(f"Champion: {bracket.winner.display()}")
    return "\n".join(line.rstrip() for line in lines)


__all__ = [
    "round_capacity",
    "max_competitors",
    "opening_round_label",
    "is_final_round",
    "next_round_label",
    "pair_round",
    "group_by_round",
    "find_duplicate_matches",
    "render_bracket",
]
