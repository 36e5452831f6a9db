"""
Unit tests for the DNA-driven Decision Engine.

Tests full-mode signal resolution, basic-mode heuristics, shared resolver
helpers (confidence, sizing, stops), personality effects and the invariants
that must hold for every input.
"""

from dataclasses import replace
import random

from hypothesis import given, settings, strategies as st
import pytest

from clawtrader.analysis.dna import AgentDNA
from clawtrader.data.market import MACDValues, MarketSnapshot, MovingAverages
from clawtrader.trading.decision_engine import (
    DecisionEngine,
    TradingDecision,
    basic_thresholds,
    decide,
    position_size,
    resolve_action,
    risk_levels,
    signal_confidence,
)
from clawtrader.trading.personality import Personality
from clawtrader.trading.positions import PositionState

# =============================================================================
# Resolver Helpers
# =============================================================================


@pytest.mark.unit
class TestResolverHelpers:
    def test_signal_confidence(self):
        assert signal_confidence(0.5, 100) == pytest.approx(65.0)
        assert signal_confidence(-0.5, 0) == pytest.approx(50.0)

    def test_signal_confidence_is_clamped(self):
        assert signal_confidence(0.0, 0) == 10.0
        assert signal_confidence(2.0, 100) == 98.0

    def test_position_size(self):
        assert position_size(100, 100) == pytest.approx(50.0)
        assert position_size(100, 0) == pytest.approx(5.0)
        assert position_size(50, 50) == pytest.approx(13.75)

    def test_resolve_action_flat(self):
        assert resolve_action(0.3, 0.2, has_position=False) == "BUY"
        assert resolve_action(-0.3, 0.2, has_position=False) == "HOLD"
        assert resolve_action(0.1, 0.2, has_position=False) == "HOLD"

    def test_resolve_action_holding(self):
        assert resolve_action(0.3, 0.2, has_position=True) == "BUY"
        assert resolve_action(-0.3, 0.2, has_position=True) == "SELL"
        assert resolve_action(-0.2, 0.2, has_position=True) == "HOLD"

    def test_risk_levels_buy(self):
        levels = risk_levels("BUY", 100.0, risk_tolerance=50)
        assert levels.stop_loss_pct == pytest.approx(6.0)
        assert levels.take_profit_pct == pytest.approx(9.0)
        assert levels.stop_loss == pytest.approx(94.0)
        assert levels.take_profit == pytest.approx(109.0)

    def test_risk_levels_sell_are_mirrored(self):
        levels = risk_levels("SELL", 100.0, risk_tolerance=0)
        assert levels.stop_loss == pytest.approx(102.0)
        assert levels.take_profit == pytest.approx(85.0)

    def test_risk_levels_hold(self):
        assert risk_levels("HOLD", 100.0, risk_tolerance=50) is None

    def test_basic_thresholds(self):
        dna = AgentDNA(aggression=70, contrarian_bias=20)
        market = MarketSnapshot(symbol="bitcoin", current_price=95.0, high_24h=100.0, low_24h=90.0)
        t = basic_thresholds(dna, market)

        assert t.dip_pct == pytest.approx(-0.8)
        assert t.dca_pct == pytest.approx(-1.2)
        assert t.profit_pct == pytest.approx(1.3)
        assert t.range_buy_pct == pytest.approx(48.0)
        assert t.range_sell_pct == pytest.approx(48.0)
        assert t.range_position_pct == pytest.approx(50.0)


# =============================================================================
# Full Mode
# =============================================================================


@pytest.mark.unit
class TestFullMode:
    def test_bullish_indicators_buy(self, engine, trend_follower_dna, bullish_full_market, flat_position):
        decision = engine.decide(trend_follower_dna, bullish_full_market, flat_position)

        assert decision.mode == "full"
        assert decision.action == "BUY"
        assert decision.trace.final_signal == pytest.approx(0.638, abs=1e-3)
        assert decision.trace.threshold == pytest.approx(0.13)
        assert decision.confidence == pytest.approx(75.8, abs=0.05)
        assert decision.suggested_amount == pytest.approx(36.5 * 0.758, abs=0.05)

    def test_stop_and_take_profit_bracket_price_on_buy(
        self, engine, trend_follower_dna, bullish_full_market, flat_position
    ):
        decision = engine.decide(trend_follower_dna, bullish_full_market, flat_position)
        price = bullish_full_market.current_price

        assert decision.stop_loss < price < decision.take_profit

    def test_bearish_indicators_sell_when_holding(
        self, engine, trend_follower_dna, bearish_full_market, holding_position
    ):
        decision = engine.decide(trend_follower_dna, bearish_full_market, holding_position)
        price = bearish_full_market.current_price

        assert decision.action == "SELL"
        assert decision.take_profit < price < decision.stop_loss

    def test_bearish_indicators_hold_when_flat(
        self, engine, trend_follower_dna, bearish_full_market, flat_position
    ):
        decision = engine.decide(trend_follower_dna, bearish_full_market, flat_position)

        assert decision.action == "HOLD"
        assert decision.suggested_amount == 0.0
        assert decision.stop_loss is None
        assert decision.take_profit is None
        assert "nothing to sell" in decision.reasoning

    def test_contrarian_fades_bullish_market(
        self, engine, contrarian_dna, bullish_full_market, holding_position
    ):
        decision = engine.decide(contrarian_dna, bullish_full_market, holding_position)

        assert decision.trace.weighted.contrarian_applied is True
        assert decision.trace.final_signal < 0
        assert decision.action == "SELL"
        assert "Contrarian" in decision.reasoning

    def test_contrarian_fade_while_flat_is_hold(
        self, engine, contrarian_dna, bullish_full_market, flat_position
    ):
        decision = engine.decide(contrarian_dna, bullish_full_market, flat_position)
        assert decision.action == "HOLD"

    def test_high_timing_sensitivity_waits_on_weak_signal(self, engine, flat_position):
        market = MarketSnapshot(
            symbol="bitcoin",
            current_price=100.0,
            price_change_24h=0.5,
            rsi=48.0,
            macd=MACDValues(value=2.0, signal=1.9, histogram=0.1),
            moving_averages=MovingAverages(ma20=99.0, ma50=101.0, ma200=102.0),
        )
        patient = AgentDNA(timing_sensitivity=100, contrarian_bias=0)
        eager = AgentDNA(timing_sensitivity=0, contrarian_bias=0)

        assert engine.decide(patient, market, flat_position).action == "HOLD"
        assert engine.decide(eager, market, flat_position).trace.threshold == pytest.approx(0.05)

    def test_aggressive_personality_pushes_over_threshold(self, engine, flat_position):
        market = MarketSnapshot(
            symbol="bitcoin",
            current_price=100.0,
            price_change_24h=0.0,
            macd=MACDValues(value=1.0, signal=1.0, histogram=0.0),
        )
        dna = AgentDNA(timing_sensitivity=0, contrarian_bias=0)

        assert engine.decide(dna, market, flat_position, "adaptive").action == "HOLD"
        assert engine.decide(dna, market, flat_position, "aggressive").action == "BUY"

    def test_deceptive_inversion_with_forced_flip(
        self, trend_follower_dna, bullish_full_market, holding_position, always_random
    ):
        engine = DecisionEngine(deceptive_flip_probability=1.0, activity_bias_probability=0.0)
        decision = engine.decide(
            trend_follower_dna, bullish_full_market, holding_position, "deceptive", always_random
        )

        assert decision.trace.adjustment.inverted is True
        assert decision.action == "SELL"


# =============================================================================
# Basic Mode
# =============================================================================


@pytest.mark.unit
class TestBasicMode:
    def test_oversold_flat_agent_buys_the_dip(self, engine, oversold_market, flat_position):
        dna = AgentDNA(aggression=50, contrarian_bias=20)
        decision = engine.decide(dna, oversold_market, flat_position)

        assert decision.mode == "basic"
        assert decision.action == "BUY"
        assert decision.trace.rule == "dip_buy"
        assert decision.confidence == pytest.approx(75.0)
        assert decision.suggested_amount == pytest.approx(27.5 * 0.75)

    def test_overbought_holder_takes_profit(self, engine, overbought_market, holding_position):
        dna = AgentDNA(aggression=70, contrarian_bias=20)
        decision = engine.decide(dna, overbought_market, holding_position)

        assert decision.action == "SELL"
        assert decision.trace.rule == "take_profit"
        assert decision.confidence == pytest.approx(84.0)

    def test_low_in_range_flat_agent_enters(self, engine, flat_position):
        market = MarketSnapshot(
            symbol="bitcoin", current_price=91.0, price_change_24h=0.5, high_24h=100.0, low_24h=90.0
        )
        decision = engine.decide(AgentDNA(contrarian_bias=0), market, flat_position)

        assert decision.action == "BUY"
        assert decision.trace.rule == "range_buy"
        assert decision.confidence == pytest.approx(min(80.0, 55.0 + (45.0 - 10.0)))

    def test_accumulation_after_weak_week(self, engine, flat_position):
        market = MarketSnapshot(
            symbol="bitcoin",
            current_price=99.0,
            price_change_24h=1.0,
            price_change_7d=-15.0,
            high_24h=100.0,
            low_24h=90.0,
        )
        decision = engine.decide(AgentDNA(contrarian_bias=0), market, flat_position)

        assert decision.action == "BUY"
        assert decision.trace.rule == "accumulation"
        assert decision.confidence == 65.0

    def test_flat_agent_waits_without_signal(self, engine, flat_position):
        market = MarketSnapshot(
            symbol="bitcoin", current_price=99.0, price_change_24h=0.5, high_24h=100.0, low_24h=90.0
        )
        decision = engine.decide(AgentDNA(contrarian_bias=0), market, flat_position)

        assert decision.action == "HOLD"
        assert decision.confidence == 60.0
        assert decision.suggested_amount == 0.0

    def test_high_in_range_holder_trims(self, engine, holding_position):
        market = MarketSnapshot(
            symbol="bitcoin", current_price=99.0, price_change_24h=0.5, high_24h=100.0, low_24h=90.0
        )
        decision = engine.decide(AgentDNA(aggression=50), market, holding_position)

        assert decision.action == "SELL"
        assert decision.trace.rule == "range_sell"
        assert decision.confidence == pytest.approx(min(85.0, 55.0 + (90.0 - 50.0)))

    def test_crash_triggers_stop_loss_with_max_size(self, engine, holding_position):
        market = MarketSnapshot(
            symbol="bitcoin", current_price=50.0, price_change_24h=-12.0, high_24h=60.0, low_24h=40.0
        )
        decision = engine.decide(AgentDNA(), market, holding_position)

        assert decision.action == "SELL"
        assert decision.trace.rule == "stop_loss"
        assert decision.confidence == 75.0
        assert decision.suggested_amount == 50.0

    def test_moderate_dip_while_holding_averages_down(self, engine, holding_position):
        market = MarketSnapshot(
            symbol="bitcoin", current_price=50.0, price_change_24h=-2.0, high_24h=60.0, low_24h=40.0
        )
        decision = engine.decide(AgentDNA(contrarian_bias=20), market, holding_position)

        assert decision.action == "BUY"
        assert decision.trace.rule == "dca"
        assert decision.confidence == 65.0

    def test_activity_bias_disabled_holds(self, engine, holding_position):
        market = MarketSnapshot(
            symbol="bitcoin", current_price=50.0, price_change_24h=0.2, high_24h=60.0, low_24h=40.0
        )
        decision = engine.decide(AgentDNA(), market, holding_position)

        assert decision.action == "HOLD"
        assert decision.trace.rule == "hold"
        assert decision.confidence == 55.0

    def test_activity_bias_takes_minor_action(self, holding_position, always_random):
        engine = DecisionEngine(deceptive_flip_probability=0.0, activity_bias_probability=0.3)
        up = MarketSnapshot(
            symbol="bitcoin", current_price=50.0, price_change_24h=0.2, high_24h=60.0, low_24h=40.0
        )
        down = MarketSnapshot(
            symbol="bitcoin", current_price=50.0, price_change_24h=-0.2, high_24h=60.0, low_24h=40.0
        )

        sell = engine.decide(AgentDNA(), up, holding_position, rng=always_random)
        buy = engine.decide(AgentDNA(), down, holding_position, rng=always_random)

        assert (sell.action, sell.confidence) == ("SELL", 45.0)
        assert (buy.action, buy.confidence) == ("BUY", 45.0)

    def test_deceptive_flip_inverts_heuristic(self, oversold_market, overbought_market, always_random):
        engine = DecisionEngine(deceptive_flip_probability=1.0, activity_bias_probability=0.0)
        dna = AgentDNA(aggression=70, contrarian_bias=20)
        holding = PositionState.from_holdings(1.0, 100.0, 100.0)

        flipped_sell = engine.decide(dna, overbought_market, holding, "deceptive", always_random)
        assert flipped_sell.action == "BUY"
        assert flipped_sell.trace.rule == "take_profit_inverted"

        flipped_buy_flat = engine.decide(
            dna, oversold_market, PositionState.flat(100.0), "deceptive", always_random
        )
        assert flipped_buy_flat.action == "HOLD"
        assert flipped_buy_flat.suggested_amount == 0.0

    def test_other_personalities_only_annotate(self, engine, oversold_market, flat_position):
        dna = AgentDNA(contrarian_bias=20)
        adaptive = engine.decide(dna, oversold_market, flat_position, "adaptive")
        aggressive = engine.decide(dna, oversold_market, flat_position, "aggressive")

        assert adaptive.action == aggressive.action
        assert adaptive.confidence == aggressive.confidence
        assert "Aggressive overlay does not affect basic-mode heuristics" in aggressive.reasoning

    @pytest.mark.parametrize("personality", ["aggressive", "cautious", "chaotic", "calculating"])
    def test_non_deceptive_personalities_draw_nothing(
        self, engine, flat_position, always_random, personality
    ):
        market = MarketSnapshot(
            symbol="bitcoin", current_price=99.0, price_change_24h=0.5, high_24h=100.0, low_24h=90.0
        )
        rng = always_random

        decision = engine.decide(AgentDNA(contrarian_bias=0), market, flat_position, personality, rng)

        assert decision.action == "HOLD"
        assert decision.trace.adjustment.delta == 0.0
        assert decision.trace.to_dict()["personalityDelta"] == 0.0
        assert rng.uniform_calls == 0 and rng.random_calls == 0
        assert "noise" not in decision.reasoning
        assert "does not affect basic-mode heuristics" in decision.reasoning

    def test_rsi_alone_uses_basic_mode(self, engine, flat_position):
        market = MarketSnapshot(symbol="bitcoin", current_price=100.0, rsi=15.0)
        assert engine.decide(AgentDNA(), market, flat_position).mode == "basic"


# =============================================================================
# Interface
# =============================================================================


@pytest.mark.unit
class TestDecisionInterface:
    def test_dna_mapping_is_accepted(self, engine, oversold_market, flat_position):
        decision = engine.decide({"contrarianBias": 20}, oversold_market, flat_position)
        assert decision.action == "BUY"

    def test_unknown_personality_is_adaptive(self, engine, oversold_market, flat_position):
        decision = engine.decide(AgentDNA(), oversold_market, flat_position, "mysterious")
        assert decision.personality is Personality.ADAPTIVE

    def test_to_dict_wire_format(self, engine, oversold_market, flat_position):
        data = engine.decide(AgentDNA(contrarian_bias=20), oversold_market, flat_position).to_dict()

        assert data["action"] == "BUY"
        assert {"suggestedAmount", "technicalAnalysis", "riskAssessment", "stopLoss", "takeProfit"} <= set(data)
        assert data["mode"] == "basic"
        assert data["trace"]["rule"] == "dip_buy"

    def test_module_level_decide(self, oversold_market, flat_position, never_random):
        decision = decide(AgentDNA(contrarian_bias=20), oversold_market, flat_position, rng=never_random)
        assert isinstance(decision, TradingDecision)
        assert decision.action == "BUY"

    def test_repr(self, engine, oversold_market, flat_position):
        decision = engine.decide(AgentDNA(contrarian_bias=20), oversold_market, flat_position)
        assert "BUY" in repr(decision)


# =============================================================================
# Properties
# =============================================================================

traits = st.floats(min_value=0, max_value=100)
dna_strategy = st.builds(
    AgentDNA,
    risk_tolerance=traits,
    aggression=traits,
    pattern_recognition=traits,
    timing_sensitivity=traits,
    contrarian_bias=traits,
)
price = st.floats(min_value=0.01, max_value=1e6)
optional_indicators = st.one_of(
    st.none(),
    st.builds(
        MACDValues,
        value=st.floats(min_value=-100, max_value=100),
        signal=st.floats(min_value=-100, max_value=100),
        histogram=st.floats(min_value=-100, max_value=100),
    ),
)


@st.composite
def markets(draw):
    current = draw(price)
    low = draw(st.floats(min_value=0.0, max_value=current))
    high = draw(st.floats(min_value=current, max_value=current * 2))
    return MarketSnapshot(
        symbol="bitcoin",
        current_price=current,
        price_change_24h=draw(st.floats(min_value=-50, max_value=50)),
        price_change_7d=draw(st.one_of(st.none(), st.floats(min_value=-80, max_value=80))),
        high_24h=high,
        low_24h=low,
        rsi=draw(st.one_of(st.none(), st.floats(min_value=0, max_value=100))),
        macd=draw(optional_indicators),
    )


positions = st.one_of(
    st.builds(PositionState.flat, st.floats(min_value=0, max_value=1e6)),
    st.builds(
        PositionState.from_holdings,
        st.floats(min_value=0.001, max_value=1e3),
        st.floats(min_value=0, max_value=1e6),
        st.floats(min_value=0.01, max_value=1e6),
    ),
)
personalities = st.sampled_from([p.value for p in Personality])


@pytest.mark.unit
class TestDecisionProperties:
    @settings(max_examples=300, deadline=None)
    @given(
        dna=dna_strategy,
        market=markets(),
        position=positions,
        personality=personalities,
        seed=st.integers(min_value=0, max_value=2**32),
    )
    def test_invariants(self, dna, market, position, personality, seed):
        engine = DecisionEngine(deceptive_flip_probability=0.15, activity_bias_probability=0.3)
        decision = engine.decide(dna, market, position, personality, random.Random(seed))

        assert decision.action in ("BUY", "SELL", "HOLD")
        assert 10.0 <= decision.confidence <= 98.0
        assert 0.0 <= decision.suggested_amount <= 50.0
        if decision.action == "HOLD":
            assert decision.suggested_amount == 0.0
            assert decision.stop_loss is None and decision.take_profit is None
        else:
            assert decision.stop_loss is not None and decision.take_profit is not None
        if not position.has_position:
            assert decision.action != "SELL"
        if decision.action == "BUY":
            assert decision.stop_loss < market.current_price < decision.take_profit
        if decision.action == "SELL":
            assert decision.take_profit < market.current_price < decision.stop_loss

    @settings(deadline=None)
    @given(
        dna=dna_strategy,
        market=markets(),
        position=positions,
        personality=st.sampled_from(["aggressive", "cautious", "calculating", "adaptive"]),
    )
    def test_deterministic_personalities_are_deterministic(self, dna, market, position, personality):
        engine = DecisionEngine(activity_bias_probability=0.0)
        first = engine.decide(dna, market, position, personality)
        second = engine.decide(dna, market, position, personality)

        assert first.to_dict() == second.to_dict()

    @settings(deadline=None)
    @given(dna=dna_strategy, position=positions, change=st.floats(min_value=-50, max_value=50))
    def test_zero_range_never_fails(self, dna, position, change):
        market = MarketSnapshot(
            symbol="bitcoin",
            current_price=100.0,
            price_change_24h=change,
            high_24h=100.0,
            low_24h=100.0,
            macd=MACDValues(value=0.0, signal=0.0, histogram=0.0),
        )
        decision = DecisionEngine(activity_bias_probability=0.0).decide(dna, market, position)

        assert decision.trace.signals.volatility == 0.0
        assert decision.trace.signals.price_position == 0.5

    @settings(deadline=None)
    @given(dna=dna_strategy, market=markets(), position=positions)
    def test_hold_grows_with_timing_sensitivity(self, dna, market, position):
        engine = DecisionEngine(deceptive_flip_probability=0.0, activity_bias_probability=0.0)
        actions = [
            engine.decide(replace(dna, timing_sensitivity=timing), market, position).action
            for timing in range(0, 101, 10)
        ]

        first_hold = actions.index("HOLD") if "HOLD" in actions else len(actions)
        assert all(action == "HOLD" for action in actions[first_hold:])


# =============================================================================
# Reference Scenarios
# =============================================================================

REFERENCE_DNA = AgentDNA(
    risk_tolerance=50,
    aggression=50,
    pattern_recognition=80,
    timing_sensitivity=20,
    contrarian_bias=20,
)


@pytest.mark.unit
class TestReferenceScenarios:
    def test_oversold_flat_agent_buys(self, engine):
        market = MarketSnapshot(
            symbol="bitcoin",
            current_price=100.0,
            price_change_24h=-3.0,
            high_24h=110.0,
            low_24h=95.0,
            rsi=25.0,
        )
        position = PositionState(has_position=False, usdc_balance=1000.0)

        decision = engine.decide(REFERENCE_DNA, market, position)

        assert decision.action == "BUY"
        assert decision.stop_loss < 100.0 < decision.take_profit

    def test_overbought_holder_sells(self, engine):
        market = MarketSnapshot(
            symbol="bitcoin",
            current_price=120.0,
            price_change_24h=8.0,
            high_24h=121.0,
            low_24h=100.0,
            rsi=78.0,
        )
        position = PositionState(has_position=True, token_amount=5.0, usdc_balance=0.0)

        decision = engine.decide(REFERENCE_DNA, market, position)

        assert decision.action == "SELL"
        assert decision.take_profit < 120.0 < decision.stop_loss

    def test_timing_sweep_turns_action_into_hold(self, engine, flat_position):
        # Only MACD carries signal: technical score 0.25, no intuitive read.
        market = MarketSnapshot(
            symbol="bitcoin",
            current_price=100.0,
            macd=MACDValues(value=1.0, signal=0.0, histogram=1.0),
        )
        decisions = [
            engine.decide(
                AgentDNA(pattern_recognition=100, contrarian_bias=0, timing_sensitivity=timing),
                market,
                flat_position,
            )
            for timing in range(0, 101, 5)
        ]
        actions = [d.action for d in decisions]
        thresholds = [d.trace.threshold for d in decisions]

        assert thresholds == sorted(thresholds)
        assert actions[0] == "BUY"
        assert actions[-1] == "HOLD"
        first_hold = actions.index("HOLD")
        assert all(action == "HOLD" for action in actions[first_hold:])
        assert all(action == "BUY" for action in actions[:first_hold])


# =============================================================================
# Position Consistency
# =============================================================================


@pytest.mark.unit
class TestPositionConsistency:
    def test_has_position_without_tokens_is_flat(self):
        position = PositionState(has_position=True, token_amount=0.0, usdc_balance=100.0)

        assert position.has_position is False
        assert position.to_dict()["hasPosition"] is False

    def test_holding_requires_tokens(self):
        assert PositionState(has_position=True, token_amount=0.5).has_position is True
        assert PositionState(has_position=False, token_amount=0.5).has_position is False

    def test_zero_token_position_never_sells(self, engine):
        market = MarketSnapshot(
            symbol="bitcoin", current_price=100.0, price_change_24h=8.0, high_24h=121.0, low_24h=100.0
        )
        position = PositionState(has_position=True, token_amount=0.0, usdc_balance=1000.0)

        decision = engine.decide(AgentDNA(), market, position)

        assert decision.action != "SELL"
        assert decision.trace.rule == "range_buy"

    def test_zero_token_position_in_full_mode(self, engine, trend_follower_dna, bearish_full_market):
        position = PositionState(has_position=True, token_amount=0.0, usdc_balance=1000.0)

        decision = engine.decide(trend_follower_dna, bearish_full_market, position)

        assert decision.action == "HOLD"
        assert "nothing to sell" in decision.reasoning
