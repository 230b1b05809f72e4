"""Tests for ownership resolution and owner-gated actions."""

from decimal import Decimal

import pytest

from campaign_state.donation.coordinator import DonationCoordinator
from campaign_state.errors import InputValidationError, NotCampaignOwner, OwnerActionFailed
from campaign_state.models import FallbackRecord, MetadataRecord
from campaign_state.ownership import OwnerActions, is_owner
from campaign_state.state.reconciler import reconcile, refresh_totals


@pytest.fixture
async def campaign(chain_reader, fallback_document):
    return reconcile(
        7,
        chain=await chain_reader.get(7),
        fallback=FallbackRecord.model_validate(fallback_document),
    )


@pytest.fixture
def owner_actions(mutator):
    return OwnerActions(mutator)


class TestIsOwner:
    """Ownership checks."""

    def test_chain_owner_case_insensitive(self, campaign, registry):
        owner = registry.campaigns[7]["owner"]

        assert is_owner(campaign, owner.lower())
        assert is_owner(campaign, owner.upper().replace("0X", "0x"))

    def test_legacy_wallet_counts(self, campaign):
        assert is_owner(campaign, "0x00000000000000000000000000000000000000aa")

    def test_stranger_is_not_owner(self, campaign):
        assert not is_owner(campaign, "0x0000000000000000000000000000000000000bad")

    @pytest.mark.parametrize("actor", [None, "", "   "])
    def test_missing_actor_is_never_owner(self, campaign, actor):
        assert not is_owner(campaign, actor)

    def test_missing_campaign_is_never_owned(self):
        assert not is_owner(None, "0x01")

    def test_campaign_without_owner(self):
        campaign = reconcile("x", fallback=FallbackRecord(id="x", title="Draft"))

        assert not is_owner(campaign, "0x01")


class TestOwnerActions:
    """Update and deactivate."""

    @pytest.mark.asyncio
    async def test_update_applies_text(self, owner_actions, campaign, mutator, registry):
        owner = registry.campaigns[7]["owner"]

        updated = await owner_actions.update(campaign, owner, title="New title", description="  ")

        assert mutator.updates == [(7, "New title", campaign.description, campaign.image)]
        assert updated.title == "New title"
        assert updated.description == campaign.description

    @pytest.mark.asyncio
    async def test_stranger_cannot_update(self, owner_actions, campaign, mutator):
        with pytest.raises(NotCampaignOwner):
            await owner_actions.update(campaign, "0xbad", title="Hijacked")

        assert mutator.updates == []

    @pytest.mark.asyncio
    async def test_deactivate(self, owner_actions, campaign, mutator, registry):
        result = await owner_actions.deactivate(campaign, registry.campaigns[7]["owner"])

        assert mutator.deactivated == [7]
        assert result.active is False
        assert campaign.active is True

    @pytest.mark.asyncio
    async def test_mutator_failure_wrapped(self, owner_actions, campaign, mutator, registry):
        mutator.fail_with = "execution reverted"

        with pytest.raises(OwnerActionFailed, match="execution reverted"):
            await owner_actions.deactivate(campaign, registry.campaigns[7]["owner"])

    @pytest.mark.asyncio
    async def test_requires_onchain_id(self, owner_actions, mutator):
        draft = reconcile(
            "draft",
            fallback=FallbackRecord(id="draft", title="Draft", wallet_address="0x01"),
        )

        with pytest.raises(InputValidationError):
            await owner_actions.deactivate(draft, "0x01")
        assert mutator.deactivated == []


class TestOwnerActionsKeepSources:
    """Owner writes are carried in the view's source records."""

    @pytest.mark.asyncio
    async def test_update_survives_next_donation(self, owner_actions, campaign, registry, submitter, aggregate_reader):
        owner = registry.campaigns[7]["owner"]
        updated = await owner_actions.update(campaign, owner, title="New title")
        coordinator = DonationCoordinator(submitter, aggregate_reader, display_timeout=0.01)

        stream = coordinator.donate(updated, "1")
        await stream.result()
        coordinator.close()

        refreshed = stream.history[-1].campaign
        assert updated.sources.chain.title == "New title"
        assert refreshed.title == "New title"
        assert refreshed.amount_raised == Decimal("51")

    @pytest.mark.asyncio
    async def test_metadata_title_still_wins(self, owner_actions, chain_reader, registry):
        campaign = reconcile(
            7,
            chain=await chain_reader.get(7),
            metadata=MetadataRecord(title="Meta title"),
        )

        updated = await owner_actions.update(campaign, registry.campaigns[7]["owner"], title="New title")

        assert updated.title == "Meta title"
        assert updated.provenance["title"] == "metadata"
        assert updated.sources.chain.title == "New title"

    @pytest.mark.asyncio
    async def test_deactivate_recorded_in_chain_source(self, owner_actions, campaign, registry):
        result = await owner_actions.deactivate(campaign, registry.campaigns[7]["owner"])

        assert result.sources.chain.active is False
        assert refresh_totals(result, None).active is False

    @pytest.mark.asyncio
    async def test_update_fallback_only_campaign(self, owner_actions, mutator):
        draft = reconcile(
            5,
            fallback=FallbackRecord(id=5, title="Draft", wallet_address="0x01", amount_raised=Decimal("2")),
        )

        updated = await owner_actions.update(draft, "0x01", title="Published")

        assert mutator.updates == [(5, "Published", "", "")]
        assert updated.title == "Published"
        assert updated.amount_raised == Decimal("2")
        assert is_owner(updated, "0x01")
