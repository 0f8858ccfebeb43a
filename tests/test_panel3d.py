"""Tests for the panel controller event protocol."""

import logging
import math

import pytest

from tourviz3d.cells3d import CellState
from tourviz3d.grid3d import HistoryUnderflow, OutOfBounds
from tourviz3d.panel3d import EventType, PanelController, PanelEvent
from tourviz3d.sink3d import (
    AgentCommand,
    CellPositionCommand,
    CellStyleCommand,
    NullSink,
    TrailCommand,
)


def _assert_trail_consistent(panel):
    assert len(panel.history) == len(panel.trail_points)
    for node, point in zip(panel.history, panel.trail_points):
        assert point == panel.mapper.map(node, panel.separation)


class TestInitBoard:
    def test_initial_state(self, panel, dims):
        assert len(panel.states()) == dims.size
        assert panel.history == ()
        assert panel.trail_points == ()
        assert panel.agent_position == (0, 0, 0)
        for node, state in panel.states().items():
            expected = CellState.BLOCKED if node == (1, 1, 1) else CellState.FREE
            assert state is expected

    def test_init_board_clears_progress(self, panel):
        panel.move((0, 0, 1))
        panel.move((2, 1, 1))
        panel.init_board()

        assert panel.history == ()
        assert panel.agent_position == panel.start
        assert panel.cell_state((0, 0, 1)) is CellState.FREE
        assert panel.cell_state((1, 1, 1)) is CellState.BLOCKED

    def test_default_sink(self, dims):
        assert isinstance(PanelController(dims).sink, NullSink)

    def test_emits_full_scene(self, dims, recording):
        PanelController(dims, sink=recording)
        assert len(recording.of_type(CellPositionCommand)) == dims.size
        assert len(recording.of_type(CellStyleCommand)) == dims.size
        assert recording.of_type(TrailCommand)[-1].points == ()
        assert recording.of_type(AgentCommand)[-1].point == (0.0, 0.0, 0.0)


class TestMoveRevert:
    def test_move_then_revert_example(self, panel):
        panel.process_event("move", (0, 0, 1))
        assert panel.history == ((0, 0, 1),)
        assert panel.cell_state((0, 0, 1)) is CellState.ACTIVE
        assert panel.agent_position == (0, 0, 1)

        panel.process_event("revert", (0, 0, 1))
        assert panel.history == ()
        assert panel.cell_state((0, 0, 1)) is CellState.FREE

    def test_round_trip_restores_history(self, panel):
        panel.move((0, 0, 1))
        panel.move((2, 1, 1))
        before = (panel.history, panel.trail_points)

        panel.move((0, 2, 2))
        panel.revert((0, 2, 2))

        assert (panel.history, panel.trail_points) == before

    def test_move_onto_blocked_keeps_blocked_style(self, panel):
        panel.move((1, 1, 1))
        assert panel.cell_state((1, 1, 1)) is CellState.BLOCKED
        assert panel.history == ((1, 1, 1),)
        assert panel.agent_position == (1, 1, 1)

    def test_revert_restores_blocked(self, panel):
        panel.move((1, 1, 1))
        panel.revert((1, 1, 1))
        assert panel.cell_state((1, 1, 1)) is CellState.BLOCKED

    def test_active_marks_accumulate(self, panel):
        panel.move((0, 0, 1))
        panel.move((2, 1, 1))
        assert panel.cell_state((0, 0, 1)) is CellState.ACTIVE
        assert panel.cell_state((2, 1, 1)) is CellState.ACTIVE

    def test_revert_uses_event_node_and_pops_top(self, panel, caplog):
        panel.move((0, 0, 1))
        panel.move((2, 1, 1))
        with caplog.at_level(logging.WARNING, logger="tourviz3d.panel3d"):
            panel.revert((0, 0, 1))

        assert panel.history == ((0, 0, 1),)
        assert panel.cell_state((0, 0, 1)) is CellState.FREE
        assert panel.cell_state((2, 1, 1)) is CellState.ACTIVE
        assert panel.agent_position == (0, 0, 1)
        assert "does not match" in caplog.text

    def test_extra_revert_is_tolerated(self, panel):
        panel.move((0, 0, 1))
        panel.revert((0, 0, 1))
        panel.revert((0, 0, 0))
        assert panel.history == ()
        assert panel.trail_points == ()
        assert panel.agent_position == (0, 0, 0)

    def test_unknown_cell_is_tolerated(self, panel):
        panel.move((5, 5, 5))
        assert panel.agent_position == (5, 5, 5)
        assert panel.history == ((5, 5, 5),)
        _assert_trail_consistent(panel)

        panel.revert((5, 5, 5))
        assert panel.history == ()

    def test_event_type_enum_and_step(self, panel):
        event = panel.process_event(EventType.MOVE, [2, 0, 1], step=7)
        assert event == PanelEvent(kind=EventType.MOVE, node=(2, 0, 1), step=7)

    def test_event_type_string_is_case_insensitive(self, panel):
        assert panel.process_event("MOVE", (0, 1, 0)).kind is EventType.MOVE

    def test_fractional_coordinate_rejected(self, panel):
        with pytest.raises(ValueError):
            panel.move((0.7, 0, 1))
        assert panel.history == ()
        assert panel.agent_position == (0, 0, 0)
        assert panel.cell_state((0, 0, 1)) is CellState.FREE

    def test_unknown_event_type(self, panel):
        with pytest.raises(ValueError):
            panel.process_event("jump", (0, 0, 1))
        assert panel.history == ()

    def test_replay(self, panel):
        events = [
            ("move", (0, 0, 1)),
            PanelEvent(EventType.MOVE, (2, 1, 1), step=2),
            ("revert", (2, 1, 1)),
        ]
        handled = panel.replay(events)
        assert [e.kind for e in handled] == [EventType.MOVE, EventType.MOVE, EventType.REVERT]
        assert handled[1].step == 2
        assert panel.history == ((0, 0, 1),)


class TestStrictMode:
    def test_out_of_bounds_move_raises_before_mutation(self, strict_panel):
        with pytest.raises(OutOfBounds):
            strict_panel.move((3, 0, 0))
        assert strict_panel.agent_position == (0, 0, 0)
        assert strict_panel.history == ()

    def test_history_underflow(self, strict_panel):
        with pytest.raises(HistoryUnderflow):
            strict_panel.revert((0, 0, 1))
        assert strict_panel.cell_state((0, 0, 1)) is CellState.FREE

    def test_valid_events_still_work(self, strict_panel):
        strict_panel.move((0, 0, 1))
        strict_panel.revert((0, 0, 1))
        assert strict_panel.history == ()

    def test_strict_constraints(self, strict_panel):
        with pytest.raises(OutOfBounds):
            strict_panel.apply_constraints((0, 0, 0), [(3, 3, 3)])
        assert strict_panel.blocked == {(1, 1, 1)}


class TestExclusiveActive:
    @pytest.fixture
    def exclusive(self, dims):
        return PanelController(dims, exclusive_active=True, blocked=[(1, 1, 1)])

    def test_only_latest_move_is_active(self, exclusive):
        exclusive.move((0, 0, 1))
        exclusive.move((2, 1, 1))
        assert exclusive.cell_state((0, 0, 1)) is CellState.FREE
        assert exclusive.cell_state((2, 1, 1)) is CellState.ACTIVE

    def test_revert_reactivates_previous(self, exclusive):
        exclusive.move((0, 0, 1))
        exclusive.move((2, 1, 1))
        exclusive.revert((2, 1, 1))
        assert exclusive.cell_state((2, 1, 1)) is CellState.FREE
        assert exclusive.cell_state((0, 0, 1)) is CellState.ACTIVE

    def test_previous_blocked_cell_stays_blocked(self, exclusive):
        exclusive.move((1, 1, 1))
        exclusive.move((0, 1, 1))
        assert exclusive.cell_state((1, 1, 1)) is CellState.BLOCKED
        exclusive.revert((0, 1, 1))
        assert exclusive.cell_state((1, 1, 1)) is CellState.BLOCKED

    def test_mismatched_revert_leaves_single_active(self, exclusive):
        exclusive.move((0, 0, 1))
        exclusive.move((2, 1, 1))
        exclusive.move((0, 2, 2))
        exclusive.revert((2, 1, 1))

        assert exclusive.history == ((0, 0, 1), (2, 1, 1))
        assert exclusive.cells.nodes_in(CellState.ACTIVE) == [(2, 1, 1)]
        assert exclusive.cell_state((0, 2, 2)) is CellState.FREE


class TestConstraintsAndReset:
    def test_apply_constraints_resets_everything(self, panel):
        panel.move((0, 0, 1))
        panel.apply_constraints((2, 2, 2), [(0, 0, 1), (0, 1, 0)])

        assert panel.history == ()
        assert panel.trail_points == ()
        assert panel.agent_position == (2, 2, 2)
        assert panel.start == (2, 2, 2)
        assert panel.cell_state((0, 0, 1)) is CellState.BLOCKED
        assert panel.cell_state((1, 1, 1)) is CellState.FREE

    def test_reset_keeps_blocked_cells(self, panel):
        panel.apply_constraints((0, 0, 0), [(0, 0, 1), (2, 2, 2)])
        panel.move((0, 0, 1))
        panel.move((2, 2, 2))
        panel.move((1, 0, 2))
        panel.reset()

        assert panel.cell_state((0, 0, 1)) is CellState.BLOCKED
        assert panel.cell_state((2, 2, 2)) is CellState.BLOCKED
        assert panel.cell_state((1, 0, 2)) is CellState.FREE
        assert panel.history == ()
        assert panel.agent_position == (0, 0, 0)

    def test_start_used_by_reset(self, dims):
        panel = PanelController(dims, start=(1, 2, 0))
        panel.move((0, 0, 1))
        panel.reset()
        assert panel.agent_position == (1, 2, 0)


class TestSeparation:
    def test_remaps_trail_example(self, panel):
        panel.move((0, 0, 1))
        panel.move((2, 1, 2))
        before = panel.trail_points

        panel.update_separation(1.0)

        after = panel.trail_points
        assert len(after) == 2
        for (x0, _, d0), (x1, v1, d1), node in zip(before, after, panel.history):
            assert (x1, d1) == (x0, d0)
            assert v1 == node[2] * 2 + panel.mapper.offset[1]

    def test_invariant_holds_after_every_operation(self, panel):
        operations = [
            lambda: panel.move((0, 0, 1)),
            lambda: panel.update_separation(0.5),
            lambda: panel.move((2, 1, 2)),
            lambda: panel.revert((2, 1, 2)),
            lambda: panel.update_separation(2.0),
            lambda: panel.revert((0, 0, 1)),
            lambda: panel.revert((0, 0, 0)),
            lambda: panel.move((1, 2, 0)),
            lambda: panel.reset(),
        ]
        for op in operations:
            op()
            _assert_trail_consistent(panel)

    def test_agent_and_cells_relayout(self, dims, recording):
        panel = PanelController(dims, offset=(4.0, 0.0, 0.0), sink=recording)
        panel.move((1, 1, 2))
        recording.clear()

        panel.update_separation(0.5)

        positions = recording.of_type(CellPositionCommand)
        assert len(positions) == dims.size
        by_node = {cmd.node: cmd.point for cmd in positions}
        assert by_node[(1, 1, 2)] == (5.0, 3.0, 1.0)
        assert recording.of_type(AgentCommand)[-1].point == (5.0, 3.0, 1.0)
        assert recording.of_type(TrailCommand)[-1].points == ((5.0, 3.0, 1.0),)
        assert recording.of_type(CellStyleCommand) == []

    def test_state_unchanged(self, panel):
        panel.move((0, 0, 1))
        states = panel.states()
        panel.update_separation(3.0)
        assert panel.states() == states
        assert panel.agent_position == (0, 0, 1)

    @pytest.mark.parametrize("bad", [-0.1, math.nan, math.inf])
    def test_rejects_invalid(self, panel, bad):
        with pytest.raises(ValueError):
            panel.update_separation(bad)
        assert panel.separation == 0.0


class TestSinkCommands:
    def test_move_commands(self, panel, recording):
        recording.clear()
        panel.move((0, 0, 1))

        assert recording.commands[0] == AgentCommand((0.0, 1.0, 0.0))
        styles = recording.of_type(CellStyleCommand)
        assert len(styles) == 1
        assert styles[0].node == (0, 0, 1)
        assert styles[0].style == panel.palette.active
        assert styles[0].style.scale == 0.9
        assert recording.commands[-1] == TrailCommand(((0.0, 1.0, 0.0),))

    def test_revert_restores_style(self, panel, recording):
        panel.move((0, 0, 1))
        recording.clear()
        panel.revert((0, 0, 1))

        styles = recording.of_type(CellStyleCommand)
        assert [cmd.style for cmd in styles] == [panel.palette.free]
        assert recording.commands[-1] == TrailCommand(())

    def test_blocked_style(self, panel, recording):
        blocked = [
            cmd for cmd in recording.of_type(CellStyleCommand) if cmd.node == (1, 1, 1)
        ]
        assert blocked[-1].style.scale == 0.85
        assert blocked[-1].style.state is CellState.BLOCKED
