"""
Unit Tests for the project StatusMachine.

Tests business rules:
- Forward-only status graph
- Transition guards and milestone effects
- Editable / frozen / locked policy per status
"""
import itertools

import pytest

from boatyard.domain.entities import ProjectStatus
from boatyard.domain.workflow import MilestoneEffectType, StatusMachine, TransitionContext


ORDER = list(ProjectStatus)

ALL_CONTEXTS = [
    TransitionContext(
        has_quote_draft=draft,
        has_quote_sent=sent,
        has_quote_accepted=accepted,
        configuration_item_count=count,
        has_bom=bom,
    )
    for draft, sent, accepted, count, bom in itertools.product(
        [False, True], [False, True], [False, True], [0, 3], [False, True]
    )
]


class TestGraph:
    """Tests for the fixed forward graph."""

    def test_each_status_has_exactly_the_next_one(self):
        for current, following in zip(ORDER, ORDER[1:]):
            assert StatusMachine.get_valid_next_statuses(current) == [following]

    def test_closed_is_terminal(self):
        assert StatusMachine.get_valid_next_statuses(ProjectStatus.CLOSED) == []

    def test_no_back_edges(self):
        """No status can target one that precedes it."""
        for i, current in enumerate(ORDER):
            for earlier in ORDER[:i + 1]:
                assert not StatusMachine.can_transition(current, earlier)

    def test_skipping_a_status_is_rejected(self):
        validation = StatusMachine.validate_transition(
            ProjectStatus.DRAFT, ProjectStatus.OFFER_SENT, TransitionContext(configuration_item_count=5)
        )
        assert not validation.is_valid
        assert validation.errors == ["Cannot transition from DRAFT to OFFER_SENT"]

    def test_order_confirmed_cannot_be_undone(self):
        for target in (ProjectStatus.DRAFT, ProjectStatus.QUOTED, ProjectStatus.OFFER_SENT):
            validation = StatusMachine.validate_transition(
                ProjectStatus.ORDER_CONFIRMED, target, TransitionContext()
            )
            assert not validation.is_valid

    def test_accepts_plain_string_statuses(self):
        assert StatusMachine.can_transition("DRAFT", "QUOTED")


class TestGuards:
    """Tests for the prerequisites of each guarded transition."""

    def test_draft_to_quoted_requires_items(self):
        """A project without configuration items cannot be quoted."""
        validation = StatusMachine.validate_transition(
            ProjectStatus.DRAFT, ProjectStatus.QUOTED,
            TransitionContext(has_quote_draft=True, configuration_item_count=0),
        )
        assert validation.is_valid is False
        assert validation.errors

    def test_draft_to_quoted_with_items(self):
        validation = StatusMachine.validate_transition(
            ProjectStatus.DRAFT, ProjectStatus.QUOTED, TransitionContext(configuration_item_count=1)
        )
        assert validation.is_valid
        assert validation.milestone_effects == []

    def test_quoted_to_offer_sent_requires_sent_quote(self):
        blocked = StatusMachine.validate_transition(
            ProjectStatus.QUOTED, ProjectStatus.OFFER_SENT, TransitionContext(has_quote_draft=True)
        )
        allowed = StatusMachine.validate_transition(
            ProjectStatus.QUOTED, ProjectStatus.OFFER_SENT, TransitionContext(has_quote_sent=True)
        )
        assert not blocked.is_valid
        assert "sent" in blocked.errors[0]
        assert allowed.is_valid

    def test_offer_sent_to_order_confirmed_requires_acceptance(self):
        validation = StatusMachine.validate_transition(
            ProjectStatus.OFFER_SENT, ProjectStatus.ORDER_CONFIRMED,
            TransitionContext(has_quote_sent=True, configuration_item_count=4),
        )
        assert not validation.is_valid
        assert "accepted" in validation.errors[0]

    def test_order_confirmation_announces_freeze(self):
        """An accepted quote allows confirmation, which freezes the configuration."""
        validation = StatusMachine.validate_transition(
            ProjectStatus.OFFER_SENT, ProjectStatus.ORDER_CONFIRMED,
            TransitionContext(has_quote_accepted=True, configuration_item_count=4),
        )
        assert validation.is_valid
        assert validation.requires_confirmation
        types = [effect.type for effect in validation.milestone_effects]
        assert types == [MilestoneEffectType.FREEZE_CONFIGURATION, MilestoneEffectType.GENERATE_BOM]
        assert any("frozen" in effect.description.lower() for effect in validation.milestone_effects)

    def test_delivery_without_bom_warns_but_passes(self):
        validation = StatusMachine.validate_transition(
            ProjectStatus.READY_FOR_DELIVERY, ProjectStatus.DELIVERED, TransitionContext(has_bom=False)
        )
        assert validation.is_valid
        assert validation.warnings

    def test_closing_locks_project(self):
        validation = StatusMachine.validate_transition(
            ProjectStatus.DELIVERED, ProjectStatus.CLOSED, TransitionContext()
        )
        assert validation.is_valid
        assert [e.type for e in validation.milestone_effects] == [MilestoneEffectType.LOCK_PROJECT]


class TestAgreement:
    """get_valid_next_statuses and validate_transition never disagree."""

    @pytest.mark.parametrize("current", ORDER)
    def test_listed_statuses_validate(self, current):
        for context in ALL_CONTEXTS:
            for target in StatusMachine.get_valid_next_statuses(current, context):
                assert StatusMachine.validate_transition(current, target, context).is_valid

    @pytest.mark.parametrize("current", ORDER)
    def test_valid_statuses_are_listed(self, current):
        for context in ALL_CONTEXTS:
            listed = StatusMachine.get_valid_next_statuses(current, context)
            for target in ORDER:
                if StatusMachine.validate_transition(current, target, context).is_valid:
                    assert target in listed


class TestPolicies:
    """Tests for editable / frozen / locked classification."""

    def test_editable_statuses(self):
        editable = [s for s in ORDER if StatusMachine.is_editable(s)]
        assert editable == [ProjectStatus.DRAFT, ProjectStatus.QUOTED, ProjectStatus.OFFER_SENT]

    def test_frozen_from_order_confirmation(self):
        frozen = [s for s in ORDER if StatusMachine.is_frozen(s)]
        assert frozen == ORDER[ORDER.index(ProjectStatus.ORDER_CONFIRMED):]

    def test_only_closed_is_locked(self):
        assert [s for s in ORDER if StatusMachine.is_locked(s)] == [ProjectStatus.CLOSED]

    def test_milestones(self):
        milestones = [s for s in ORDER if StatusMachine.is_milestone(s)]
        assert milestones == [ProjectStatus.OFFER_SENT, ProjectStatus.ORDER_CONFIRMED, ProjectStatus.CLOSED]
        for status in ORDER:
            assert StatusMachine.is_milestone(status) == bool(StatusMachine.get_milestone_effects(status))

    def test_editable_and_frozen_partition_statuses(self):
        for status in ORDER:
            assert StatusMachine.is_editable(status) != StatusMachine.is_frozen(status)

    def test_status_info_for_every_status(self):
        for status in ORDER:
            info = StatusMachine.get_status_info(status)
            assert info.label
            assert info.color.startswith("text-")
            assert info.bg_color.startswith("bg-")
        assert StatusMachine.get_status_info(ProjectStatus.DRAFT).label == "Draft"
