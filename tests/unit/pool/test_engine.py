"""Tests for StableSwapEngine."""

import pytest

from amo.pool import (
    ExceedsSupplyError,
    InitialDepositError,
    InvariantError,
    NegativeResultError,
    PoolSnapshot,
    RangeError,
    SlippageError,
    StableSwapEngine,
    UnderflowError,
    UnreachableError,
    ValidationError,
)
from tests.helpers import BALANCE, ONE, TOTAL_SUPPLY, make_engine, make_params


class TestConstruction:
    """Tests for engine construction validation."""

    def test_reference_pool(self, engine):
        """Reference pool holds the given state."""
        assert engine.n_coins == 2
        assert engine.balances == [BALANCE, BALANCE]
        assert engine.admin_balances == [0, 0]
        assert engine.total_supply == TOTAL_SUPPLY

    def test_single_coin_rejected(self):
        """A pool needs at least two coins."""
        with pytest.raises(ValidationError):
            StableSwapEngine(make_params(n_coins=1), [ONE], ONE)

    def test_balance_length_mismatch(self):
        """Balances must have one entry per coin."""
        with pytest.raises(ValidationError):
            StableSwapEngine(make_params(), [ONE, ONE, ONE], ONE)

    def test_rates_length_mismatch(self):
        """Rates must have one entry per coin."""
        with pytest.raises(ValidationError):
            StableSwapEngine(make_params(rates=[ONE]), [ONE, ONE], ONE)

    def test_negative_balance_rejected(self):
        """Balances must be non-negative."""
        with pytest.raises(ValidationError):
            StableSwapEngine(make_params(), [ONE, -1], ONE)

    def test_negative_supply_rejected(self):
        """Total supply must be non-negative."""
        with pytest.raises(ValidationError):
            StableSwapEngine(make_params(), [ONE, ONE], -1)

    def test_validation_error_is_value_error(self):
        """ValidationError can be caught as ValueError."""
        with pytest.raises(ValueError):
            StableSwapEngine(make_params(), [ONE], ONE)


class TestSnapshotRestore:
    """Tests for snapshot(), restore(), clone() and speculate()."""

    def test_restore_round_trip(self, engine):
        """restore(snapshot()) undoes any sequence of mutations."""
        snap = engine.snapshot()

        engine.exchange(0, 1, 1_000 * ONE)
        engine.add_liquidity([500 * ONE, 0])
        engine.remove_liquidity_one_coin(200 * ONE, 1)
        engine.remove_liquidity(100 * ONE)
        engine.remove_liquidity_imbalance([10 * ONE, 20 * ONE])
        assert engine.snapshot() != snap

        engine.restore(snap)
        assert engine.snapshot() == snap

    def test_snapshot_is_value_copy(self, engine):
        """Mutating the engine after snapshot() leaves the snapshot alone."""
        snap = engine.snapshot()
        engine.exchange(0, 1, 1_000 * ONE)
        assert snap.balances == (BALANCE, BALANCE)

    def test_restore_wrong_size_rejected(self, engine):
        """A snapshot from a pool of a different size is rejected."""
        with pytest.raises(ValidationError):
            engine.restore(PoolSnapshot(balances=(1, 2, 3), admin_balances=(0, 0, 0), total_supply=1))

    def test_clone_is_independent(self, engine):
        """Mutating a clone does not touch the source engine."""
        copy = engine.clone()
        copy.exchange(0, 1, 1_000 * ONE)
        assert engine.balances == [BALANCE, BALANCE]
        assert copy.params is engine.params

    def test_speculate_restores(self, engine):
        """State is rolled back when the block exits normally."""
        snap = engine.snapshot()
        with engine.speculate():
            engine.exchange(0, 1, 1_000 * ONE)
            assert engine.balances[0] == BALANCE + 1_000 * ONE
        assert engine.snapshot() == snap

    def test_speculate_restores_on_error(self, engine):
        """State is rolled back when the block raises."""
        snap = engine.snapshot()
        with pytest.raises(ValidationError):
            with engine.speculate():
                engine.exchange(0, 1, 1_000 * ONE)
                engine.exchange(0, 0, ONE)
        assert engine.snapshot() == snap


class TestPrices:
    """Tests for price and virtual price."""

    def test_balanced_price_is_one(self, engine):
        """Balanced pool trades at exactly 1.0."""
        assert engine.get_p_relative_to_coin0() == [ONE]
        assert engine.price_coin0_to_k(1) == ONE

    def test_depegged_price_below_peg(self, depegged_engine):
        """After dumping coin0, one coin0 buys less than 0.98 coin1."""
        assert depegged_engine.price_coin0_to_k(1) < 98 * ONE // 100

    @pytest.mark.parametrize("k", [0, 2, -1])
    def test_price_index_out_of_range(self, engine, k):
        """Coin 0 is the reference and cannot be measured."""
        with pytest.raises(RangeError):
            engine.price_coin0_to_k(k)

    def test_range_error_is_index_error(self, engine):
        """RangeError can be caught as IndexError."""
        with pytest.raises(IndexError):
            engine.price_coin0_to_k(0)

    def test_empty_pool_price_rejected(self):
        """An empty pool has no marginal price."""
        empty = make_engine(balances=[0, 0], total_supply=0)
        with pytest.raises(ValidationError):
            empty.get_p_relative_to_coin0()
        with pytest.raises(ValidationError):
            empty.price_coin0_to_k(1)

    def test_virtual_price_balanced(self, engine):
        """Fresh balanced pool has virtual price 1.0."""
        assert engine.get_virtual_price() == ONE

    def test_virtual_price_grows_with_fees(self, engine):
        """LP share of swap fees stays in the pool."""
        engine.exchange(0, 1, 10_000 * ONE)
        assert engine.get_virtual_price() > ONE

    def test_virtual_price_empty_pool(self):
        """Virtual price is undefined without LP supply."""
        with pytest.raises(ValidationError):
            make_engine(balances=[0, 0], total_supply=0).get_virtual_price()


class TestExchange:
    """Tests for get_dy(), exchange() and get_dx()."""

    def test_get_dy_near_one_to_one(self, engine):
        """A small swap in a balanced pool returns slightly less than dx."""
        dy = engine.get_dy(0, 1, 1_000 * ONE)
        assert 999 * ONE < dy < 1_000 * ONE

    def test_get_dy_monotonic(self, engine):
        """Output never decreases as input grows."""
        outputs = [engine.get_dy(0, 1, dx) for dx in (1, 10**6, ONE, 1_000 * ONE, 100_000 * ONE, 10**24)]
        assert outputs == sorted(outputs)

    def test_get_dy_does_not_mutate(self, engine):
        """Quotes leave state untouched."""
        snap = engine.snapshot()
        engine.get_dy(0, 1, 1_000 * ONE)
        assert engine.snapshot() == snap

    def test_exchange_matches_quote(self, engine):
        """exchange() returns exactly what get_dy() quoted."""
        quoted = engine.get_dy(1, 0, 5_000 * ONE)
        assert engine.exchange(1, 0, 5_000 * ONE) == quoted

    def test_exchange_updates_balances(self, engine):
        """Input is credited, output plus admin fee debited."""
        dy = engine.exchange(0, 1, 1_000 * ONE)
        assert engine.balances[0] == BALANCE + 1_000 * ONE
        assert engine.admin_balances[1] > 0
        assert engine.balances[1] == BALANCE - dy - engine.admin_balances[1]
        assert engine.total_supply == TOTAL_SUPPLY

    def test_worse_rate_off_peg(self, engine, depegged_engine):
        """Selling more of the abundant coin gets a worse rate."""
        assert depegged_engine.get_dy(0, 1, 1_000 * ONE) < engine.get_dy(0, 1, 1_000 * ONE)

    @pytest.mark.parametrize(
        "i,j,dx",
        [
            (0, 0, ONE),  # same coin
            (0, 2, ONE),  # out of range
            (-1, 1, ONE),  # negative index
            (0, 1, 0),  # zero input
        ],
    )
    def test_invalid_exchange(self, engine, i, j, dx):
        """Bad indices and non-positive amounts are rejected without mutation."""
        snap = engine.snapshot()
        with pytest.raises(ValidationError):
            engine.exchange(i, j, dx)
        assert engine.snapshot() == snap

    def test_get_dx_is_minimal(self, engine):
        """get_dx returns the smallest input that yields the output."""
        dx = engine.get_dx(0, 1, 1_000 * ONE, 10_000 * ONE)
        assert engine.get_dy(0, 1, dx) >= 1_000 * ONE
        assert engine.get_dy(0, 1, dx - 1) < 1_000 * ONE

    def test_get_dx_unreachable(self, engine):
        """Output beyond what max_dx can buy raises UnreachableError."""
        with pytest.raises(UnreachableError):
            engine.get_dx(0, 1, 1_000 * ONE, 10 * ONE)

    def test_get_dx_rejects_zero(self, engine):
        """dy must be positive."""
        with pytest.raises(ValidationError):
            engine.get_dx(0, 1, 0, ONE)


class TestAddLiquidity:
    """Tests for add_liquidity() and calc_token_amount(is_deposit=True)."""

    def test_proportional_deposit_charges_no_fee(self, engine):
        """A balanced deposit mints LP pro rata."""
        minted = engine.add_liquidity([1_000 * ONE, 1_000 * ONE])
        assert minted == 2_000 * ONE
        assert engine.total_supply == TOTAL_SUPPLY + 2_000 * ONE
        assert engine.admin_balances == [0, 0]

    def test_one_sided_deposit_charges_imbalance_fee(self, engine):
        """A one-sided deposit mints less than its face value."""
        minted = engine.add_liquidity([1_000 * ONE, 0])
        assert 990 * ONE < minted < 1_000 * ONE
        assert engine.admin_balances[0] > 0
        assert engine.balances[0] == BALANCE + 1_000 * ONE - engine.admin_balances[0]

    def test_calc_token_amount_matches(self, engine):
        """The quote equals the executed mint and does not mutate."""
        snap = engine.snapshot()
        quoted = engine.calc_token_amount([700 * ONE, 100 * ONE], True)
        assert engine.snapshot() == snap
        assert engine.add_liquidity([700 * ONE, 100 * ONE]) == quoted

    def test_zero_deposit_raises_invariant_error(self, engine):
        """Depositing nothing does not increase D and leaves state untouched."""
        snap = engine.snapshot()
        with pytest.raises(InvariantError):
            engine.add_liquidity([0, 0])
        assert engine.snapshot() == snap

    def test_initial_deposit_needs_every_coin(self):
        """First deposit into an empty pool must include all coins."""
        empty = make_engine(balances=[0, 0], total_supply=0)
        with pytest.raises(InitialDepositError):
            empty.add_liquidity([100 * ONE, 0])
        with pytest.raises(InitialDepositError):
            empty.add_liquidity([0, 0])
        assert empty.total_supply == 0

    def test_initial_deposit_mints_d(self):
        """First LP receives D itself."""
        empty = make_engine(balances=[0, 0], total_supply=0)
        minted = empty.add_liquidity([100 * ONE, 100 * ONE])
        assert minted == 200 * ONE
        assert empty.total_supply == 200 * ONE
        assert empty.balances == [100 * ONE, 100 * ONE]

    def test_bad_amounts_rejected(self, engine):
        """Amount vectors must match n and be non-negative."""
        with pytest.raises(ValidationError):
            engine.add_liquidity([ONE])
        with pytest.raises(ValidationError):
            engine.add_liquidity([ONE, -1])


class TestRemoveLiquidity:
    """Tests for the balanced withdrawal and admin fee claim."""

    def test_pro_rata(self, engine):
        """Burning 10% of supply returns 10% of each balance."""
        result = engine.remove_liquidity(60_000 * ONE)
        assert result.amounts == (30_000 * ONE, 30_000 * ONE)
        assert result.admin_fees == (0, 0)
        assert engine.balances == [270_000 * ONE, 270_000 * ONE]
        assert engine.total_supply == 540_000 * ONE

    def test_claim_admin_fees(self, engine):
        """Claiming returns and zeroes the accrued admin balances."""
        engine.exchange(0, 1, 10_000 * ONE)
        accrued = tuple(engine.admin_balances)
        result = engine.remove_liquidity(ONE, claim_admin_fees=True)
        assert result.admin_fees == accrued
        assert engine.admin_balances == [0, 0]

    def test_withdraw_admin_fees(self, engine):
        """withdraw_admin_fees() zeroes the admin balances and returns them."""
        engine.exchange(1, 0, 10_000 * ONE)
        accrued = list(engine.admin_balances)
        assert engine.withdraw_admin_fees() == accrued
        assert engine.admin_balances == [0, 0]

    def test_exceeds_supply(self, engine):
        """Cannot burn more than the outstanding supply."""
        with pytest.raises(ExceedsSupplyError):
            engine.remove_liquidity(TOTAL_SUPPLY + 1)

    def test_zero_burn_rejected(self, engine):
        """Burn amount must be positive."""
        with pytest.raises(ValidationError):
            engine.remove_liquidity(0)


class TestRemoveLiquidityOneCoin:
    """Tests for single-coin withdrawal."""

    def test_output_below_face_value(self, engine):
        """Withdrawing one coin pays a small imbalance fee."""
        dy = engine.calc_withdraw_one_coin(1_000 * ONE, 0)
        assert 990 * ONE < dy < 1_000 * ONE

    def test_remove_matches_quote(self, engine):
        """Executed withdrawal equals the quote and burns the LP."""
        quoted = engine.calc_withdraw_one_coin(1_000 * ONE, 1)
        assert engine.remove_liquidity_one_coin(1_000 * ONE, 1) == quoted
        assert engine.total_supply == TOTAL_SUPPLY - 1_000 * ONE
        assert engine.admin_balances[1] > 0
        assert engine.balances[1] == BALANCE - quoted - engine.admin_balances[1]
        assert engine.balances[0] == BALANCE

    def test_scarce_coin_pays_less(self, depegged_engine):
        """Withdrawing the scarce coin yields less than the abundant one."""
        scarce = depegged_engine.calc_withdraw_one_coin(1_000 * ONE, 1)
        abundant = depegged_engine.calc_withdraw_one_coin(1_000 * ONE, 0)
        assert scarce < abundant

    def test_exceeds_supply(self, engine):
        """Cannot burn more than the outstanding supply."""
        with pytest.raises(ExceedsSupplyError):
            engine.calc_withdraw_one_coin(TOTAL_SUPPLY + 1, 0)

    def test_bad_index(self, engine):
        """Coin index must be in range."""
        with pytest.raises(ValidationError):
            engine.remove_liquidity_one_coin(ONE, 2)

    def test_negative_result(self):
        """Burning one wei from a lopsided low-A pool rounds the output below zero."""
        engine = make_engine(
            balances=[920120895665877500047871, 67635528567748301859438],
            params=make_params(amp=100),
        )
        with pytest.raises(NegativeResultError):
            engine.calc_withdraw_one_coin(1, 1)

    def test_failed_withdrawal_leaves_state(self):
        """A rejected withdrawal changes nothing."""
        engine = make_engine(
            balances=[920120895665877500047871, 67635528567748301859438],
            params=make_params(amp=100),
        )
        snap = engine.snapshot()
        with pytest.raises(NegativeResultError):
            engine.remove_liquidity_one_coin(1, 1)
        assert engine.snapshot() == snap


class TestRemoveLiquidityImbalance:
    """Tests for exact-amount withdrawals."""

    def test_burn_exceeds_face_value(self, engine):
        """An imbalanced withdrawal burns more LP than the amount taken."""
        burned = engine.remove_liquidity_imbalance([1_000 * ONE, 0])
        assert 1_000 * ONE < burned < 1_010 * ONE
        assert engine.total_supply == TOTAL_SUPPLY - burned
        assert engine.balances[0] == BALANCE - 1_000 * ONE - engine.admin_balances[0]

    def test_calc_token_amount_matches(self, engine):
        """calc_token_amount(is_deposit=False) quotes the burn."""
        quoted = engine.calc_token_amount([1_000 * ONE, 300 * ONE], False)
        assert engine.remove_liquidity_imbalance([1_000 * ONE, 300 * ONE]) == quoted

    def test_slippage(self, engine):
        """Burn above max_burn_amount raises without mutating."""
        snap = engine.snapshot()
        with pytest.raises(SlippageError):
            engine.remove_liquidity_imbalance([1_000 * ONE, 0], max_burn_amount=1_000 * ONE)
        assert engine.snapshot() == snap

    def test_amount_exceeds_balance(self, engine):
        """Cannot withdraw more of a coin than the pool holds."""
        with pytest.raises(UnderflowError):
            engine.remove_liquidity_imbalance([BALANCE + 1, 0])

    def test_nothing_to_withdraw(self, engine):
        """An all-zero withdrawal burns nothing and is rejected."""
        with pytest.raises(InvariantError):
            engine.remove_liquidity_imbalance([0, 0])

    def test_burn_exceeds_supply(self, engine):
        """Draining every balance needs one unit more than the supply."""
        snap = engine.snapshot()
        assert engine.calc_token_amount([BALANCE, BALANCE], False) == TOTAL_SUPPLY + 1
        with pytest.raises(ExceedsSupplyError):
            engine.remove_liquidity_imbalance([BALANCE, BALANCE])
        assert engine.snapshot() == snap


class TestContractRounding:
    """Exact figures from the contract on the 300k/300k reference pool."""

    def test_get_dy(self, engine):
        """Swap output after the -1 buffer and the dynamic fee."""
        assert engine.get_dy(0, 1, 1_000 * ONE) == 999783419261398928130

    def test_calc_token_amount_deposit(self, engine):
        """One-sided deposit mint."""
        assert engine.calc_token_amount([1_000 * ONE, 0], True) == 999895860949356782068

    def test_calc_token_amount_withdrawal(self, engine):
        """Imbalanced withdrawal burn, rounded up by one."""
        assert engine.calc_token_amount([1_000 * ONE, 300 * ONE], False) == 1300072035923280974721

    def test_calc_withdraw_one_coin(self, engine):
        """Single-coin withdrawal after the -1 buffer."""
        assert engine.calc_withdraw_one_coin(1_000 * ONE, 1) == 999895848410428530282

    def test_large_exchange_state(self, engine):
        """Balances, admin fees and price after a 200k swap."""
        engine.exchange(0, 1, 200_000 * ONE)
        assert engine.balances == [500_000 * ONE, 101190613207980925635823]
        assert engine.admin_balances == [0, 21806403509773575563]
        assert engine.price_coin0_to_k(1) == 979506211058224278
