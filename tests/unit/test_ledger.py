"""Unit tests for the soulbound ledger state machine."""

import copy

import pytest

from soulbound_ledger.core.identity import ZERO_ADDRESS
from soulbound_ledger.domain.errors import (
    AddressZero,
    ArrayLengthMismatch,
    InvalidId,
    InvalidQuantity,
    SelfApproval,
    Unauthorized,
)
from soulbound_ledger.domain.events import (
    ApprovalForAllNotification,
    MintNotification,
    TransferMultiNotification,
    TransferSingleNotification,
)
from soulbound_ledger.domain.ledger import Ledger
from soulbound_ledger.domain.rules import LedgerState, check_invariants


@pytest.mark.unit
class TestLedgerScenarios:
    """End-to-end behaviour of a freshly created ledger."""

    def test_uri_of_unminted_id_is_base_uri(self, ledger):
        """Test uri() before anything is minted returns the base URI."""
        assert ledger.uri(1) == "https://ipfs.io/ipfs/"

    def test_issuer_claim_mint(self, ledger, accounts):
        """Test the issuer minting an id to a user."""
        ledger.claim_and_mint(accounts.issuer, accounts.alice, 1)

        assert ledger.balance_of(accounts.alice, 1) == 1
        assert ledger.is_minted(1)

    def test_holder_transfers_back_to_issuer(self, ledger, accounts):
        """Test a holder moving its unit to the issuer."""
        ledger.claim_and_mint(accounts.issuer, accounts.alice, 1)

        ledger.safe_transfer_from(accounts.alice, accounts.alice, accounts.issuer, 1, 1, b"")

        assert ledger.balance_of(accounts.alice, 1) == 0
        assert ledger.balance_of(accounts.issuer, 1) == 1

    def test_reward_issues_sequential_ids(self, ledger, accounts):
        """Test reward mints start at 1 and carry their own URI suffix."""
        first = ledger.reward(accounts.bob, "Token Data")

        assert first == 1
        assert ledger.balance_of(accounts.bob, 1) == 1
        assert ledger.uri(1) == "https://ipfs.io/ipfs/Token Data"

        second = ledger.reward(accounts.bob, "Second")

        assert second == 2
        assert ledger.uri(2) == "https://ipfs.io/ipfs/Second"
        assert ledger.uri(1) == "https://ipfs.io/ipfs/Token Data"

    def test_operator_loses_access_after_revocation(self, ledger, accounts):
        """Test an approved operator can transfer until approval is revoked."""
        ledger.claim_and_mint(accounts.issuer, accounts.alice, 1)
        ledger.claim_and_mint(accounts.issuer, accounts.alice, 2)
        ledger.set_approval_for_all(accounts.alice, accounts.bob, True)

        ledger.safe_transfer_from(accounts.bob, accounts.alice, accounts.carol, 1, 1)
        assert ledger.balance_of(accounts.carol, 1) == 1
        assert ledger.balance_of(accounts.alice, 1) == 0

        ledger.set_approval_for_all(accounts.alice, accounts.bob, False)
        assert ledger.is_approved_for_all(accounts.alice, accounts.bob) is False

        with pytest.raises(Unauthorized):
            ledger.safe_transfer_from(accounts.bob, accounts.alice, accounts.carol, 2, 1)
        assert ledger.balance_of(accounts.alice, 2) == 1

    def test_batch_transfer_clones_unit_to_every_destination(self, ledger, accounts):
        """Test batch_transfer leaves the sender at 0 and each destination at 1."""
        ledger.claim_and_mint(accounts.issuer, accounts.alice, 7)

        ledger.batch_transfer(
            accounts.alice, accounts.alice, [accounts.bob, accounts.carol], 7, 1
        )

        assert ledger.balance_of(accounts.alice, 7) == 0
        assert ledger.balance_of(accounts.bob, 7) == 1
        assert ledger.balance_of(accounts.carol, 7) == 1
        assert check_invariants(ledger.state)


@pytest.mark.unit
class TestMinting:
    """Test claim_and_mint and reward."""

    def test_claim_requires_issuer(self, ledger, accounts):
        """Test a non-issuer cannot claim-mint."""
        with pytest.raises(Unauthorized) as exc_info:
            ledger.claim_and_mint(accounts.alice, accounts.alice, 1)

        assert str(exc_info.value) == "EIP5516: Unauthorized"
        assert ledger.balance_of(accounts.alice, 1) == 0
        assert ledger.drain_notifications() == []

    def test_claim_rejects_zero_recipient(self, ledger, accounts):
        """Test minting to the zero identity fails."""
        with pytest.raises(AddressZero):
            ledger.claim_and_mint(accounts.issuer, ZERO_ADDRESS, 1)

    @pytest.mark.parametrize("token_id", [0, -3])
    def test_claim_rejects_non_positive_id(self, ledger, accounts, token_id):
        """Test minting id 0 or a negative id fails with the address-zero message."""
        with pytest.raises(InvalidId) as exc_info:
            ledger.claim_and_mint(accounts.issuer, accounts.alice, token_id)

        assert exc_info.value.message == "EIP5516: Address zero error"

    def test_claim_checks_issuer_first(self, ledger, accounts):
        """Test authorization is reported before argument errors."""
        with pytest.raises(Unauthorized):
            ledger.claim_and_mint(accounts.alice, ZERO_ADDRESS, 0)

    def test_repeated_claim_saturates_at_one(self, ledger, accounts):
        """Test minting a held id again keeps the balance at 1."""
        ledger.claim_and_mint(accounts.issuer, accounts.alice, 3)
        ledger.claim_and_mint(accounts.issuer, accounts.alice, 3)

        assert ledger.balance_of(accounts.alice, 3) == 1
        assert ledger.tokens_from(accounts.alice) == [3]
        assert len(ledger.drain_notifications()) == 2

    def test_claim_emits_mint_notification(self, ledger, accounts):
        """Test claim_and_mint emits exactly one mint notification."""
        ledger.claim_and_mint(accounts.issuer, accounts.alice, 5)

        notifications = ledger.drain_notifications()

        assert len(notifications) == 1
        notification = notifications[0]
        assert isinstance(notification, MintNotification)
        assert notification.operator == accounts.issuer
        assert notification.account == accounts.alice
        assert notification.ids == [5]

    def test_claim_does_not_advance_counter(self, ledger, accounts):
        """Test claim-minted ids leave the reward counter alone."""
        ledger.claim_and_mint(accounts.issuer, accounts.alice, 50)

        assert ledger.next_token_id == 1
        assert ledger.reward(accounts.bob, "x") == 1

    def test_reward_to_other_identity(self, ledger, accounts):
        """Test reward credits `to` and names it as operator."""
        token_id = ledger.reward(accounts.alice, "meta", to=accounts.bob)

        assert ledger.balance_of(accounts.bob, token_id) == 1
        assert ledger.balance_of(accounts.alice, token_id) == 0

        (notification,) = ledger.drain_notifications()
        assert isinstance(notification, TransferSingleNotification)
        assert notification.operator == accounts.bob
        assert notification.from_ == ZERO_ADDRESS
        assert notification.to == accounts.bob
        assert notification.id == token_id
        assert notification.value == 1

    def test_reward_to_zero_identity_fails_without_consuming_id(self, ledger, accounts):
        """Test a rejected reward leaves the counter unchanged."""
        with pytest.raises(AddressZero):
            ledger.reward(accounts.alice, "meta", to=ZERO_ADDRESS)

        assert ledger.next_token_id == 1

    def test_reward_id_can_collide_with_claimed_id(self, ledger, accounts):
        """Test the reward counter ignores ids assigned by claim_and_mint."""
        ledger.claim_and_mint(accounts.issuer, accounts.alice, 1)

        token_id = ledger.reward(accounts.bob, "meta")

        assert token_id == 1
        assert ledger.balance_of(accounts.alice, 1) == 1
        assert ledger.balance_of(accounts.bob, 1) == 1


@pytest.mark.unit
class TestQueries:
    """Test balance and holdings queries."""

    def test_balance_of_zero_owner(self, ledger):
        """Test balance_of rejects the zero identity."""
        with pytest.raises(AddressZero):
            ledger.balance_of(ZERO_ADDRESS, 1)

    def test_balance_of_zero_id(self, ledger, accounts):
        """Test balance_of rejects id 0."""
        with pytest.raises(InvalidId):
            ledger.balance_of(accounts.alice, 0)

    def test_balance_of_batch_in_input_order(self, ledger, accounts):
        """Test batch balances are returned pairwise in input order."""
        ledger.claim_and_mint(accounts.issuer, accounts.alice, 1)
        ledger.claim_and_mint(accounts.issuer, accounts.bob, 2)

        balances = ledger.balance_of_batch(
            [accounts.alice, accounts.bob, accounts.alice], [1, 1, 2]
        )

        assert balances == [1, 0, 0]

    def test_balance_of_batch_length_mismatch(self, ledger, accounts):
        """Test unequal batch inputs fail."""
        with pytest.raises(ArrayLengthMismatch) as exc_info:
            ledger.balance_of_batch([accounts.alice], [1, 2])

        assert exc_info.value.message == "EIP5516: Array lengths mismatch"

    def test_balance_of_batch_invalid_id_reports_mismatch(self, ledger, accounts):
        """Test a non-positive id inside a batch fails with ArrayLengthMismatch."""
        with pytest.raises(ArrayLengthMismatch):
            ledger.balance_of_batch([accounts.alice, accounts.bob], [1, 0])

    def test_balance_of_batch_zero_owner(self, ledger, accounts):
        """Test a zero owner inside a batch fails with AddressZero."""
        with pytest.raises(AddressZero):
            ledger.balance_of_batch([accounts.alice, ZERO_ADDRESS], [1, 1])

    def test_tokens_from_tracks_credits_and_debits(self, ledger, accounts):
        """Test tokens_from lists held ids in credit order."""
        ledger.claim_and_mint(accounts.issuer, accounts.alice, 9)
        ledger.claim_and_mint(accounts.issuer, accounts.alice, 4)
        ledger.reward(accounts.alice, "meta")

        assert ledger.tokens_from(accounts.alice) == [9, 4, 1]

        ledger.safe_transfer_from(accounts.alice, accounts.alice, accounts.bob, 4, 1)

        assert ledger.tokens_from(accounts.alice) == [9, 1]
        assert ledger.tokens_from(accounts.bob) == [4]

    def test_tokens_from_zero_owner(self, ledger):
        """Test tokens_from rejects the zero identity."""
        with pytest.raises(AddressZero):
            ledger.tokens_from(ZERO_ADDRESS)

    def test_tokens_from_unknown_owner_is_empty(self, ledger, accounts):
        """Test an identity that never held anything has no tokens."""
        assert ledger.tokens_from(accounts.dave) == []


@pytest.mark.unit
class TestApprovals:
    """Test operator approvals."""

    def test_self_approval_rejected(self, ledger, accounts):
        """Test an owner cannot approve itself."""
        with pytest.raises(SelfApproval) as exc_info:
            ledger.set_approval_for_all(accounts.alice, accounts.alice, True)

        assert str(exc_info.value) == "ERC1155: setting approval status for self"

    def test_approval_is_recorded_and_notified(self, ledger, accounts):
        """Test approval state and notification."""
        assert ledger.is_approved_for_all(accounts.alice, accounts.bob) is False

        ledger.set_approval_for_all(accounts.alice, accounts.bob, True)

        assert ledger.is_approved_for_all(accounts.alice, accounts.bob) is True
        assert ledger.is_approved_for_all(accounts.bob, accounts.alice) is False

        (notification,) = ledger.drain_notifications()
        assert isinstance(notification, ApprovalForAllNotification)
        assert notification.account == accounts.alice
        assert notification.operator == accounts.bob
        assert notification.approved is True

    def test_issuer_has_no_transfer_privilege(self, ledger, accounts):
        """Test the issuer cannot move units it does not hold."""
        ledger.claim_and_mint(accounts.issuer, accounts.alice, 1)

        with pytest.raises(Unauthorized):
            ledger.safe_transfer_from(accounts.issuer, accounts.alice, accounts.issuer, 1, 1)


@pytest.mark.unit
class TestTransfers:
    """Test gated single-unit transfers."""

    def setup_method(self):
        """Set up a ledger where alice holds id 1."""
        self.issuer = "0x1111111111111111111111111111111111111111"
        self.alice = "0xa11ce00000000000000000000000000000000001"
        self.bob = "0xb0b0000000000000000000000000000000000002"
        self.carol = "0xca20100000000000000000000000000000000003"
        self.ledger = Ledger("https://ipfs.io/ipfs/", self.issuer)
        self.ledger.claim_and_mint(self.issuer, self.alice, 1)
        self.ledger.drain_notifications()

    @pytest.mark.parametrize("amount", [0, 2, -1])
    def test_quantity_other_than_one(self, amount):
        """Test every quantity other than 1 is rejected."""
        with pytest.raises(InvalidQuantity) as exc_info:
            self.ledger.safe_transfer_from(self.alice, self.alice, self.bob, 1, amount)

        assert exc_info.value.message == "EIP5516: Can only transfer one token"
        assert self.ledger.balance_of(self.alice, 1) == 1

    def test_unapproved_caller(self):
        """Test a stranger cannot move alice's unit."""
        with pytest.raises(Unauthorized):
            self.ledger.safe_transfer_from(self.bob, self.alice, self.bob, 1, 1)

    def test_sender_without_unit(self):
        """Test moving a unit the sender does not hold fails as Unauthorized."""
        with pytest.raises(Unauthorized):
            self.ledger.safe_transfer_from(self.bob, self.bob, self.alice, 1, 1)

    def test_transfer_to_zero_identity(self):
        """Test burning by transfer to the zero identity is rejected."""
        with pytest.raises(AddressZero):
            self.ledger.safe_transfer_from(self.alice, self.alice, ZERO_ADDRESS, 1, 1)

        assert self.ledger.balance_of(self.alice, 1) == 1

    def test_transfer_notification(self):
        """Test a transfer names the caller as operator."""
        self.ledger.safe_transfer_from(self.alice, self.alice, self.bob, 1, 1, b"\x01")

        (notification,) = self.ledger.drain_notifications()
        assert isinstance(notification, TransferSingleNotification)
        assert notification.operator == self.alice
        assert notification.from_ == self.alice
        assert notification.to == self.bob
        assert notification.id == 1

    def test_unit_cannot_be_moved_twice(self):
        """Test the previous holder loses the ability to transfer."""
        self.ledger.safe_transfer_from(self.alice, self.alice, self.bob, 1, 1)

        with pytest.raises(Unauthorized):
            self.ledger.safe_transfer_from(self.alice, self.alice, self.carol, 1, 1)

    def test_batch_transfer_notification_lists_destinations(self):
        """Test the multi-transfer notification carries destinations as supplied."""
        self.ledger.batch_transfer(
            self.alice, self.alice, [self.bob, self.carol, self.bob], 1, 1
        )

        (notification,) = self.ledger.drain_notifications()
        assert isinstance(notification, TransferMultiNotification)
        assert notification.to == [self.bob, self.carol, self.bob]
        assert notification.value == 1
        assert self.ledger.balance_of(self.bob, 1) == 1
        assert check_invariants(self.ledger.state)

    def test_batch_transfer_empty_destinations(self):
        """Test a batch with no destinations is rejected."""
        with pytest.raises(ArrayLengthMismatch):
            self.ledger.batch_transfer(self.alice, self.alice, [], 1, 1)

        assert self.ledger.balance_of(self.alice, 1) == 1

    def test_batch_transfer_zero_destination(self):
        """Test one zero destination rejects the whole batch."""
        with pytest.raises(AddressZero):
            self.ledger.batch_transfer(self.alice, self.alice, [self.bob, ZERO_ADDRESS], 1, 1)

        assert self.ledger.balance_of(self.bob, 1) == 0
        assert self.ledger.balance_of(self.alice, 1) == 1

    def test_batch_transfer_quantity(self):
        """Test batch_transfer enforces the single-unit rule."""
        with pytest.raises(InvalidQuantity):
            self.ledger.batch_transfer(self.alice, self.alice, [self.bob], 1, 2)

    def test_batch_transfer_unauthorized(self):
        """Test batch_transfer by a stranger fails."""
        with pytest.raises(Unauthorized):
            self.ledger.batch_transfer(self.bob, self.alice, [self.bob], 1, 1)


@pytest.mark.unit
class TestSnapshots:
    """Test snapshot and restore used by the host."""

    def test_restore_rewinds_state_and_uris(self, ledger, accounts):
        """Test restore() brings back balances, counter and suffixes."""
        ledger.reward(accounts.alice, "first")
        snapshot = ledger.snapshot()

        ledger.reward(accounts.alice, "second")
        ledger.claim_and_mint(accounts.issuer, accounts.bob, 40)
        ledger.restore(snapshot)

        assert ledger.next_token_id == 2
        assert ledger.balance_of(accounts.alice, 2) == 0
        assert ledger.balance_of(accounts.bob, 40) == 0
        assert ledger.uri(2) == "https://ipfs.io/ipfs/"
        assert ledger.uri(1) == "https://ipfs.io/ipfs/first"

        # The registry still writes through to the restored state
        ledger.reward(accounts.alice, "again")
        assert ledger.uri(2) == "https://ipfs.io/ipfs/again"

    def test_restore_puts_back_holding_order(self, ledger, accounts):
        """Test undoing a transfer returns the unit to its original position."""
        for token_id in (1, 2, 3):
            ledger.claim_and_mint(accounts.issuer, accounts.alice, token_id)
        ledger.set_approval_for_all(accounts.alice, accounts.bob, True)
        before = copy.deepcopy(ledger.state)
        snapshot = ledger.snapshot()

        ledger.safe_transfer_from(accounts.alice, accounts.alice, accounts.bob, 2, 1)
        ledger.batch_transfer(
            accounts.alice, accounts.alice, [accounts.carol, accounts.carol], 3, 1
        )
        ledger.set_approval_for_all(accounts.alice, accounts.bob, False)
        ledger.restore(snapshot)

        assert ledger.tokens_from(accounts.alice) == [1, 2, 3]
        assert ledger.tokens_from(accounts.bob) == []
        assert ledger.is_approved_for_all(accounts.alice, accounts.bob) is True
        assert ledger.state == before
        assert len(ledger.drain_notifications()) == 4

    def test_release_keeps_writes(self, ledger, accounts):
        """Test a released snapshot can no longer undo its writes."""
        snapshot = ledger.snapshot()
        ledger.reward(accounts.alice, "kept")
        ledger.release(snapshot)

        later = ledger.snapshot()
        ledger.reward(accounts.alice, "dropped")
        ledger.restore(later)

        assert ledger.next_token_id == 2
        assert ledger.tokens_from(accounts.alice) == [1]
        assert ledger.uri(1) == "https://ipfs.io/ipfs/kept"

    def test_nested_snapshots(self, ledger, accounts):
        """Test restoring an inner snapshot keeps the outer one usable."""
        outer = ledger.snapshot()
        ledger.reward(accounts.alice, "outer")
        inner = ledger.snapshot()
        ledger.reward(accounts.alice, "inner")

        ledger.restore(inner)
        assert ledger.next_token_id == 2
        assert ledger.balance_of(accounts.alice, 1) == 1

        ledger.restore(outer)
        assert ledger.next_token_id == 1
        assert ledger.tokens_from(accounts.alice) == []
        assert ledger.state == LedgerState()

    def test_zero_issuer_rejected(self):
        """Test a ledger cannot be created without an issuer."""
        with pytest.raises(AddressZero):
            Ledger("https://ipfs.io/ipfs/", ZERO_ADDRESS)
