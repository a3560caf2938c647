"""
Tests for the poll loop.

Tests:
- Live questions are answered within range
- Kick and game end stop the loop and disconnect exactly once
- Results update score, rank and nemesis
- Malformed pushes and transport failures do not kill the loop
- Retry bound ends the session
"""

import pytest

from ..bots import FixedAnswerPolicy, PromptAnswerPolicy, RandomAnswerPolicy
from ..config import ClientConfig, RetryPolicy
from ..protocol.classifier import EventKind
from ..protocol.errors import TransportError
from ..session import EndReason, LoopState, PlayMode, PollLoop
from .conftest import KICK_BODY, OK_BODY, FakeTransport, game_over, push, question, result


def no_sleep(_seconds):
    pass


def run_loop(player, policy=None):
    loop = PollLoop(player, policy=policy, sleep=no_sleep)
    results = []
    loop.run(on_cycle=results.append)
    return loop, results


class TestQuestionFlow:
    """Tests for answering questions."""

    def test_answers_live_question(self, make_player):
        transport = FakeTransport([question(0, answers=4), game_over()])
        player = make_player(transport)
        loop, results = run_loop(player, FixedAnswerPolicy(1))

        assert results[0].event.kind == EventKind.QUESTION_READY
        assert results[0].answered_slot == 1
        assert results[0].loop_state == LoopState.ANSWERING
        answers = [m for m in transport.messages_on("/service/controller")
                   if m["data"]["type"] == "message"]
        assert len(answers) == 1
        assert '"choice":101' in answers[0]["data"]["content"]

    def test_countdown_is_not_answered(self, make_player):
        upcoming = push({"questionIndex": 0, "answerMap": {"0": 1, "1": 2}, "timeLeft": 4000})
        transport = FakeTransport([upcoming, game_over()])
        player = make_player(transport)
        _, results = run_loop(player)

        assert results[0].event.kind == EventKind.QUESTION_UPCOMING
        assert results[0].answered_slot is None
        assert results[0].messages == ["Get ready, question is coming up!"]
        assert not any(m["data"].get("type") == "message"
                       for m in transport.messages_on("/service/controller"))

    @pytest.mark.parametrize("answers", [2, 3, 4])
    def test_auto_answer_stays_in_range(self, make_player, answers):
        script = [question(i, answers=answers) for i in range(30)] + [game_over()]
        player = make_player(FakeTransport(script))
        _, results = run_loop(player, RandomAnswerPolicy(seed=answers))

        slots = [r.answered_slot for r in results if r.answered_slot is not None]
        assert len(slots) == 30
        assert all(0 <= slot < answers for slot in slots)

    def test_documented_question_scenario(self, make_player):
        body = r'[{"data":{"content":"{\"questionIndex\":2,\"answerMap\":{\"0\":\"5\",\"1\":\"9\"}}"}}]'
        player = make_player(FakeTransport([body, game_over()]))
        _, results = run_loop(player, FixedAnswerPolicy(3))

        assert results[0].answered_slot == 1
        state = player.snapshot()
        assert state.question_number == 3
        assert state.answer_2_valid is False
        assert state.answer_3_valid is False

    def test_interactive_policy_drives_answers(self, make_player):
        asked = []

        def prompt(number, count):
            asked.append((number, count))
            return "2"

        transport = FakeTransport([question(4, answers=3), game_over()])
        player = make_player(transport, mode=PlayMode.INTERACTIVE)
        _, results = run_loop(player, PromptAnswerPolicy(prompt))

        assert asked == [(5, 3)]
        assert results[0].answered_slot == 2

    def test_interactive_mode_requires_policy(self, make_player):
        player = make_player(FakeTransport(), mode=PlayMode.INTERACTIVE)
        with pytest.raises(ValueError):
            PollLoop(player)

    def test_closed_input_leaves_game(self, make_player):
        def closed_stdin(number, count):
            raise EOFError

        transport = FakeTransport([question(0, answers=4), game_over()])
        player = make_player(transport, mode=PlayMode.INTERACTIVE)
        loop, results = run_loop(player, PromptAnswerPolicy(closed_stdin))

        assert len(results) == 1
        assert results[0].loop_state == LoopState.ENDING
        assert results[0].answered_slot is None
        assert player.end_reason == EndReason.DISCONNECTED
        assert transport.channels().count("/meta/disconnect") == 1
        assert len(transport.connect_script) == 1
        assert loop.state == LoopState.ENDED

    def test_unanswerable_question_keeps_polling(self, make_player):
        transport = FakeTransport([question(0, answers=2), game_over()])
        player = make_player(transport)
        _, results = run_loop(player, PromptAnswerPolicy(lambda n, c: "7", max_attempts=2))

        assert results[0].errors
        assert results[1].event.kind == EventKind.GAME_ENDED


class TestTermination:
    """Tests for kick and game end."""

    def test_kick_stops_without_further_connects(self, make_player):
        transport = FakeTransport([KICK_BODY, question(0)])
        player = make_player(transport)
        loop, results = run_loop(player)

        assert len(results) == 1
        assert results[0].messages == ["You were kicked from the game!"]
        assert results[0].loop_state == LoopState.ENDING
        assert transport.poll_connects() == 1
        assert len(transport.connect_script) == 1
        assert player.game_running() is False
        assert player.end_reason == EndReason.KICKED
        assert loop.state == LoopState.ENDED

    def test_game_end_disconnects_exactly_once(self, make_player):
        transport = FakeTransport([OK_BODY, game_over("quiz-9", 40)])
        player = make_player(transport)
        _, results = run_loop(player)

        assert transport.channels().count("/meta/disconnect") == 1
        assert transport.channels()[-1] == "/meta/disconnect"
        assert player.game_running() is False
        assert player.end_reason == EndReason.GAME_ENDED
        assert results[-1].messages == ["This quiz's ID is quiz-9", "Players in game: 40"]
        assert results[-1].loop_state == LoopState.ENDING

    def test_stop_is_cooperative(self, make_player):
        transport = FakeTransport([OK_BODY, OK_BODY, OK_BODY])
        player = make_player(transport)
        loop = PollLoop(player, sleep=no_sleep)

        def stop_after_first(_result):
            loop.stop()

        loop.run(on_cycle=stop_after_first)

        assert transport.poll_connects() == 1
        assert transport.channels().count("/meta/disconnect") == 1
        assert player.end_reason == EndReason.DISCONNECTED

    def test_inactive_player_only_disconnects(self, make_player):
        transport = FakeTransport([OK_BODY])
        player = make_player(transport, join=False)
        player.bootstrap()
        loop, results = run_loop(player)

        assert results == []
        assert transport.channels().count("/meta/connect") == 1
        assert transport.channels()[-1] == "/meta/disconnect"


class TestReporting:
    """Tests for result and feedback handling."""

    def test_result_updates_scores(self, make_player):
        transport = FakeTransport([
            result(is_correct=False, points=0, total=1200, rank=4,
                   nemesis={"name": "Grace", "totalScore": 1500}),
            game_over(),
        ])
        player = make_player(transport)
        _, results = run_loop(player)

        assert results[0].loop_state == LoopState.REPORTING
        assert results[0].messages[0] == "Incorrect."
        assert player.total_score() == 1200
        assert player.rank() == 4
        assert player.nemesis() == "Grace"
        assert player.nemesis_score() == 1500

    def test_leader_has_no_nemesis(self, make_player):
        player = make_player(FakeTransport([result(points=730, nemesis=None), game_over()]))
        _, results = run_loop(player)

        assert player.nemesis() == "no one"
        assert player.nemesis_score() == 730
        assert "behind no one" in results[0].messages[-1]

    def test_feedback_is_reported(self, make_player):
        player = make_player(FakeTransport([push({"primaryMessage": "Top 5!"}), game_over()]))
        _, results = run_loop(player)

        assert results[0].messages == ["Top 5!"]
        assert player.snapshot().last_feedback == "Top 5!"


class TestResilience:
    """Tests for malformed payloads and transport failures."""

    def test_malformed_payload_is_skipped(self, make_player):
        broken = push({"isCorrect": "maybe", "points": "lots"})
        player = make_player(FakeTransport([broken, question(0, answers=2), game_over()]))
        _, results = run_loop(player)

        assert results[0].success is False
        assert results[0].warnings
        assert results[1].answered_slot in (0, 1)
        assert player.end_reason == EndReason.GAME_ENDED

    def test_unparseable_body_is_skipped(self, make_player):
        player = make_player(FakeTransport(["<html>502</html>", game_over()]))
        _, results = run_loop(player)

        assert results[0].success is False
        assert player.end_reason == EndReason.GAME_ENDED

    def test_transient_failure_recovers(self, make_player):
        transport = FakeTransport([TransportError("reset"), TransportError("reset"), game_over()])
        player = make_player(transport)
        loop, results = run_loop(player)

        assert [r.success for r in results] == [False, False, True]
        assert loop.consecutive_failures == 0
        assert player.end_reason == EndReason.GAME_ENDED

    def test_retry_bound_ends_session(self, make_player):
        transport = FakeTransport([TransportError("down")] * 3 + [game_over()])
        player = make_player(transport)
        _, results = run_loop(player)

        assert len(results) == 3
        assert results[-1].errors
        assert player.end_reason == EndReason.TRANSPORT_FAILURE
        assert transport.channels().count("/meta/disconnect") == 1

    def test_unbounded_retry_keeps_polling(self, make_player, config):
        unbounded = ClientConfig(
            base_url=config.base_url,
            host=config.host,
            poll_interval=0.0,
            retry=RetryPolicy(max_consecutive_failures=None, backoff_seconds=0.0),
        )
        transport = FakeTransport([TransportError("down")] * 10 + [game_over()])
        player = make_player(transport, player_config=unbounded)
        _, results = run_loop(player)

        assert len(results) == 11
        assert player.end_reason == EndReason.GAME_ENDED

    def test_backoff_delays_are_used(self, make_player, config):
        backoff = ClientConfig(
            base_url=config.base_url,
            host=config.host,
            poll_interval=0.01,
            retry=RetryPolicy(max_consecutive_failures=5, backoff_seconds=0.5, backoff_factor=2.0),
        )
        transport = FakeTransport([TransportError("down"), TransportError("down"), OK_BODY, game_over()])
        player = make_player(transport, player_config=backoff)
        delays = []
        PollLoop(player, sleep=delays.append).run()

        assert delays == [0.5, 1.0, 0.01]
