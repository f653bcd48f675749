"""End-to-end scenarios driving RankingSync through host refreshes."""

import asyncio
import json

from ranksync import RankingSync, RestoreOutcome, UpdateKind, UpdateOptions
from ranksync._internal.io.storage import InMemoryStorage, JsonFileStorage
from ranksync.adapters.memory import HeadlessViewModel
from ranksync.codes import EventKind
from ranksync.kernel.criteria import NumberFilter, SortCriterion
from ranksync.kernel.table import SortDirection


def _ranking(engine):
    return engine.controller.ranking


def _echo(engine, table):
    """The host refresh caused by our own write; it must be skipped."""
    report = engine.update(UpdateOptions(table=table))
    assert report.skipped
    assert report.skip_reason == "save_echo"


class _RejectingView(HeadlessViewModel):
    """Takes the provider, then fails to apply any dump."""

    def set_data_provider(self, provider, dump=None):
        self.data = provider
        if dump is not None:
            provider.get_last_ranking().children.pop()
            raise RuntimeError("view rejected the dump")


class TestFirstLoad:
    def test_first_load_builds_everything_without_saving(self, started_engine, storage, base_table):
        report = started_engine.update(UpdateOptions(table=base_table))

        assert not report.skipped
        assert report.provider_action == "rebuilt"
        assert report.view_action == "created"
        assert report.save_requested is False
        assert storage.writes == []
        assert started_engine.store.active_labels() == ["id", "val"]
        assert [c.label for c in _ranking(started_engine).children[3:]] == ["id", "val"]

    def test_first_load_with_mapping_rows(self, started_engine, storage, make_table):
        table = make_table([("id", "id"), ("val", "integer")], [{"id": 1, "val": 10}, {"id": 2, "val": 20}])

        started_engine.update(UpdateOptions(table=table))

        cols = started_engine.provider.get_columns()
        assert [(c.label, c.kind.value) for c in cols] == [("id", "string"), ("val", "number")]
        assert cols[1].domain == (10, 20)
        assert len(_ranking(started_engine).children) == 3 + 2
        assert started_engine.persistence.restore_complete
        assert storage.writes == []

    def test_sort_hint_applied_on_first_load(self, started_engine, make_table, base_rows, storage):
        table = make_table([("id", "id"), ("val", "number")], base_rows)
        table.columns[1].sort = SortDirection.DESCENDING
        table.columns[1].sort_order = 0

        started_engine.update(UpdateOptions(table=table))

        criteria = _ranking(started_engine).get_sort_criteria()
        assert [(c.label, asc) for c, asc in criteria] == [("val", False)]
        assert storage.writes == []

    def test_palette_cursor_advances_per_extraction(self, started_engine, base_table):
        started_engine.update(UpdateOptions(table=base_table))
        assert started_engine.color_cursor == 1

        started_engine.update(UpdateOptions(table=base_table, kind=UpdateKind.RESIZE))
        assert started_engine.color_cursor == 2

    def test_missing_table_skips_and_clears_suppression(self, started_engine, base_table):
        started_engine.update(UpdateOptions(table=base_table))
        _ranking(started_engine).find_by_label("val").set_width(120)
        assert started_engine.persistence.suppress_next_update

        report = started_engine.update(UpdateOptions(table=None))

        assert report.skipped
        assert report.skip_reason == "no_table"
        assert not started_engine.persistence.suppress_next_update


class TestDataRefresh:
    def test_added_column_grows_and_saves(self, started_engine, storage, base_table, grown_table):
        started_engine.update(UpdateOptions(table=base_table))

        report = started_engine.update(UpdateOptions(table=grown_table))

        assert report.provider_action == "patched"
        assert report.view_action == "refreshed"
        assert report.reconcile_mode == "grow"
        assert report.added_labels == ["category"]
        assert report.save_requested is True
        assert started_engine.store.active_labels() == ["id", "val", "category"]
        assert len(storage.writes) == 1
        dumped = json.loads(storage.writes[0][1])
        assert [c["label"] for c in dumped["rankings"][0]["columns"]][3:] == ["id", "val", "category"]

    def test_refresh_without_column_changes_does_not_save(self, started_engine, storage, base_table, base_rows, make_table):
        started_engine.update(UpdateOptions(table=base_table))

        same_shape = make_table([("id", "id"), ("val", "number")], [list(r) for r in base_rows])
        report = started_engine.update(UpdateOptions(table=same_shape))

        assert report.provider_action == "patched"
        assert report.added_labels == []
        assert storage.writes == []

    def test_removed_column_shrinks_and_forgets_its_grouping(self, started_engine, grown_table, make_table):
        started_engine.update(UpdateOptions(table=grown_table))
        ranking = _ranking(started_engine)
        ranking.set_group_criteria([ranking.find_by_label("val")])
        assert [g.column for g in started_engine.store.group_criteria] == ["val"]
        _echo(started_engine, grown_table)

        shrunk = make_table([("id", "id"), ("category", ["x", "y"])], [["a", "x"]])
        report = started_engine.update(UpdateOptions(table=shrunk))

        assert report.reconcile_mode == "shrink"
        assert report.removed_labels == ["val"]
        assert report.save_requested is True
        assert started_engine.store.active_labels() == ["id", "category"]
        assert started_engine.store.group_criteria == []
        assert _ranking(started_engine).get_group_criteria() == []

    def test_remembered_criteria_survive_a_refresh(self, started_engine, base_table, grown_table):
        started_engine.update(UpdateOptions(table=base_table))
        ranking = _ranking(started_engine)
        val = ranking.find_by_label("val")
        ranking.set_sort_criteria([(val, True)])
        val.set_filter(NumberFilter(min=1.5))
        _echo(started_engine, base_table)

        started_engine.update(UpdateOptions(table=grown_table))

        rebuilt = _ranking(started_engine)
        assert rebuilt is not ranking
        assert [(c.label, asc) for c, asc in rebuilt.get_sort_criteria()] == [("val", True)]
        assert rebuilt.find_by_label("val").filter == NumberFilter(min=1.5)
        assert started_engine.store.sort_criteria == [SortCriterion(column="val", ascending=True)]
        # re-attaching does not record the filter again
        assert len(started_engine.store.filters) == 1

    def test_renamed_column_keeps_its_criteria_across_a_refresh(self, started_engine, base_table, grown_table):
        started_engine.update(UpdateOptions(table=base_table))
        ranking = _ranking(started_engine)
        val = ranking.find_by_label("val")
        val.set_label("Value")
        ranking.set_sort_criteria([(val, True)])
        ranking.set_group_criteria([val])
        val.set_filter(NumberFilter(min=1.5))
        _echo(started_engine, base_table)

        started_engine.update(UpdateOptions(table=grown_table))

        rebuilt = _ranking(started_engine)
        assert rebuilt is not ranking
        assert [(c.desc.label, asc) for c, asc in rebuilt.get_sort_criteria()] == [("val", True)]
        assert [c.desc.label for c in rebuilt.get_group_criteria()] == ["val"]
        assert rebuilt.find_by_desc("val").filter == NumberFilter(min=1.5)
        assert started_engine.store.sort_criteria == [SortCriterion(column="val", ascending=True)]

    def test_cosmetic_update_leaves_provider_alone(self, started_engine, base_table):
        started_engine.update(UpdateOptions(table=base_table))
        provider = started_engine.provider
        ranking = _ranking(started_engine)

        report = started_engine.update(UpdateOptions(table=base_table, kind=UpdateKind.RESIZE))

        assert report.provider_action == "unchanged"
        assert report.view_action == "refreshed"
        assert started_engine.provider is provider
        assert _ranking(started_engine) is ranking


class TestSettingsChanges:
    def test_provider_settings_change_rebuilds_and_reattaches(self, started_engine, base_table):
        started_engine.update(UpdateOptions(table=base_table))
        view = started_engine.view
        ranking = _ranking(started_engine)
        ranking.set_sort_criteria([(ranking.find_by_label("val"), True)])
        _echo(started_engine, base_table)

        report = started_engine.update(UpdateOptions(
            table=base_table,
            objects={"provider": {"maxGroupColumns": 2}},
        ))

        assert report.provider_action == "rebuilt"
        assert report.view_action == "reattached"
        assert started_engine.view is view
        assert started_engine.provider.settings.max_group_columns == 2
        # remembered sort wins over the (absent) table sort hint
        assert [(c.label, asc) for c, asc in _ranking(started_engine).get_sort_criteria()] == [("val", True)]

    def test_view_settings_change_recreates_view(self, started_engine, base_table):
        started_engine.update(UpdateOptions(table=base_table))
        old_view = started_engine.view

        report = started_engine.update(UpdateOptions(
            table=base_table,
            kind=UpdateKind.STYLE,
            objects={"lineup": {"sidePanel": True}},
        ))

        assert report.view_action == "created"
        assert started_engine.view is not old_view
        assert started_engine.view.settings.side_panel is True
        # listeners moved to the new view
        assert old_view.listener_count() == 0
        assert started_engine.view.has_listener(EventKind.SELECTION_CHANGED)


class TestInteractionPersistence:
    def test_user_interaction_saves_and_skips_echo(self, started_engine, storage, base_table):
        started_engine.update(UpdateOptions(table=base_table))

        _ranking(started_engine).find_by_label("val").set_width(160)

        assert len(storage.writes) == 1
        assert started_engine.settings.dump.dump == storage.writes[0][1]
        _echo(started_engine, base_table)
        assert not started_engine.update(UpdateOptions(table=base_table)).skipped

    def test_highlight_save_does_not_skip_next_update(self, started_engine, storage, base_table):
        started_engine.update(UpdateOptions(table=base_table))

        started_engine.view.set_highlight(2)

        assert len(storage.writes) == 1
        assert not started_engine.update(UpdateOptions(table=base_table)).skipped

    def test_group_criteria_merge_across_interactions(self, started_engine, grown_table):
        started_engine.update(UpdateOptions(table=grown_table))
        ranking = _ranking(started_engine)

        ranking.set_group_criteria([ranking.find_by_label("val")])
        ranking.set_group_criteria([ranking.find_by_label("category")])

        assert [g.column for g in started_engine.store.group_criteria] == ["val", "category"]

    def test_moving_a_column_recaptures_active_order(self, started_engine, grown_table):
        started_engine.update(UpdateOptions(table=grown_table))
        ranking = _ranking(started_engine)

        ranking.move(ranking.find_by_label("category"), 3)

        assert started_engine.store.active_labels() == ["category", "id", "val"]

    def test_listeners_are_not_duplicated_across_cycles(self, started_engine, storage, base_table):
        for _ in range(3):
            started_engine.update(UpdateOptions(table=base_table, kind=UpdateKind.RESIZE))

        started_engine.view.set_selection([0])

        assert len(storage.writes) == 1

    def test_no_save_before_start(self, storage, base_table):
        engine = RankingSync(storage)
        engine.update(UpdateOptions(table=base_table))

        _ranking(engine).find_by_label("val").set_width(90)

        assert storage.writes == []

    def test_destroy_detaches_listeners(self, started_engine, storage, base_table):
        started_engine.update(UpdateOptions(table=base_table))
        ranking = _ranking(started_engine)

        started_engine.destroy()
        ranking.find_by_label("val").set_width(10)

        assert ranking.listener_count() == 0
        assert started_engine.view.listener_count() == 0
        assert storage.writes == []

    def test_failed_write_does_not_break_the_engine(self, base_table, grown_table):
        storage = InMemoryStorage(fail_writes=True)
        engine = RankingSync(storage)
        asyncio.run(engine.start())
        engine.update(UpdateOptions(table=base_table))

        report = engine.update(UpdateOptions(table=grown_table))

        assert report.save_requested is True
        assert storage.values == {}
        assert engine.status().save_count == 1


class TestRestore:
    def _saved_storage(self, base_table):
        storage = InMemoryStorage()
        engine = RankingSync(storage)
        asyncio.run(engine.start())
        engine.update(UpdateOptions(table=base_table))
        ranking = _ranking(engine)
        val = ranking.find_by_label("val")
        val.set_width(150)
        ranking.set_sort_criteria([(val, True)])
        engine.view.set_selection([2])
        return storage

    def test_round_trip_into_fresh_engine(self, base_table):
        storage = self._saved_storage(base_table)

        engine = RankingSync(storage)
        outcome = asyncio.run(engine.start())
        assert outcome == RestoreOutcome.DEFERRED
        assert not engine.persistence.restore_complete

        report = engine.update(UpdateOptions(table=base_table))

        assert report.restored is True
        assert engine.restore_outcome == RestoreOutcome.RESTORED
        assert engine.persistence.restore_complete
        ranking = _ranking(engine)
        assert ranking.find_by_label("val").width == 150
        assert [(c.label, asc) for c, asc in ranking.get_sort_criteria()] == [("val", True)]
        assert engine.view.selection == [2]
        assert engine.store.active_labels() == ["id", "val"]
        assert engine.store.sort_criteria == [SortCriterion(column="val", ascending=True)]

    def test_restored_engine_saves_again(self, base_table):
        storage = self._saved_storage(base_table)
        engine = RankingSync(storage)
        asyncio.run(engine.start())
        engine.update(UpdateOptions(table=base_table))
        writes_before = len(storage.writes)

        _ranking(engine).find_by_label("val").set_width(175)

        assert len(storage.writes) == writes_before + 1

    def test_start_after_data_replays_immediately(self, base_table):
        storage = self._saved_storage(base_table)
        engine = RankingSync(storage)
        engine.update(UpdateOptions(table=base_table))

        outcome = asyncio.run(engine.start())

        assert outcome == RestoreOutcome.RESTORED
        assert _ranking(engine).find_by_label("val").width == 150

    def test_start_is_idempotent(self, storage):
        engine = RankingSync(storage)

        assert asyncio.run(engine.start()) == RestoreOutcome.EMPTY
        assert asyncio.run(engine.start()) == RestoreOutcome.EMPTY

    def test_failed_replay_keeps_default_ranking_and_saving(self, base_table):
        storage = self._saved_storage(base_table)
        engine = RankingSync(storage, view_factory=_RejectingView)
        engine.update(UpdateOptions(table=base_table))

        assert asyncio.run(engine.start()) == RestoreOutcome.FAILED
        assert engine.persistence.restore_complete
        ranking = _ranking(engine)
        assert ranking.listener_count() > 0
        assert [c.label for c in ranking.children[3:]] == ["id", "val"]
        assert engine.store.active_labels() == ["id", "val"]
        writes_before = len(storage.writes)

        ranking.find_by_label("val").set_width(99)

        assert len(storage.writes) == writes_before + 1

    def test_failed_deferred_replay_keeps_saving(self, base_table):
        storage = self._saved_storage(base_table)
        engine = RankingSync(storage, view_factory=_RejectingView)
        assert asyncio.run(engine.start()) == RestoreOutcome.DEFERRED

        report = engine.update(UpdateOptions(table=base_table))

        assert report.restored is False
        assert engine.restore_outcome == RestoreOutcome.FAILED
        assert [c.label for c in _ranking(engine).children[3:]] == ["id", "val"]
        writes_before = len(storage.writes)

        engine.view.set_selection([1])

        assert len(storage.writes) == writes_before + 1

    def test_concurrent_start_calls_share_one_restore(self):
        class SlowStorage(InMemoryStorage):
            async def get(self, key):
                await asyncio.sleep(0.01)
                return await super().get(key)

        engine = RankingSync(SlowStorage())

        async def main():
            return await asyncio.gather(engine.start(), engine.start())

        assert asyncio.run(main()) == [RestoreOutcome.EMPTY, RestoreOutcome.EMPTY]

    def test_broken_dump_falls_back_to_default_ranking(self, base_table):
        storage = InMemoryStorage({"dump": "{not json at all"})
        engine = RankingSync(storage)

        assert asyncio.run(engine.start()) == RestoreOutcome.FAILED
        report = engine.update(UpdateOptions(table=base_table))

        assert report.provider_action == "rebuilt"
        assert engine.store.active_labels() == ["id", "val"]
        assert engine.persistence.restore_complete

    def test_unavailable_storage_still_enables_saves(self, base_table, grown_table):
        storage = InMemoryStorage(fail_reads=True)
        engine = RankingSync(storage)

        assert asyncio.run(engine.start()) == RestoreOutcome.UNAVAILABLE
        engine.update(UpdateOptions(table=base_table))
        engine.update(UpdateOptions(table=grown_table))

        assert len(storage.writes) == 1

    def test_round_trip_through_json_file(self, tmp_path, base_table):
        path = tmp_path / "ranking-state.json"
        first = RankingSync(JsonFileStorage(path))
        asyncio.run(first.start())
        first.update(UpdateOptions(table=base_table))
        _ranking(first).find_by_label("id").set_visible(False)

        second = RankingSync(JsonFileStorage(path))
        asyncio.run(second.start())
        second.update(UpdateOptions(table=base_table))

        assert _ranking(second).find_by_label("id").visible is False

    def test_running_loop_schedules_writes(self, storage, base_table, grown_table):
        async def main():
            engine = RankingSync(storage)
            await engine.start()
            engine.update(UpdateOptions(table=base_table))
            engine.update(UpdateOptions(table=grown_table))
            await engine.flush()
            return engine

        engine = asyncio.run(main())

        assert len(storage.writes) == 1
        assert engine.status().active_labels == ["id", "val", "category"]
