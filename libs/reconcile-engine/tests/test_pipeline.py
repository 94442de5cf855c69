"""Tests for the ordered action pipeline."""

from unittest.mock import MagicMock

from securesign_k8s import EventType

from securesign_engine import (
    BaseAction,
    ConditionStatus,
    Context,
    DeadlineExceededError,
    Pipeline,
    Reason,
    Result,
    ResultKind,
)


class RecordingAction(BaseAction):
    """Action whose predicate and outcome are set by the test."""

    def __init__(self, name, calls, applicable=True, result=None, error=None):
        super().__init__()
        self.name = name
        self.calls = calls
        self.applicable = applicable
        self.result = result or Result.continue_()
        self.error = error

    def can_handle(self, ctx, instance):
        self.calls.append(("can_handle", self.name))
        return self.applicable

    def handle(self, ctx, instance):
        self.calls.append(("handle", self.name))
        if self.error:
            raise self.error
        return self.result


def _pipeline(*specs):
    calls = []
    factories = [lambda spec=spec: RecordingAction(calls=calls, **spec) for spec in specs]
    return Pipeline("sample", factories), calls


class TestPipeline:
    """Test cases for Pipeline."""

    def test_at_most_one_handle_per_run(self, sample):
        """Test that the first non-continue result ends the run."""
        pipeline, calls = _pipeline(
            {"name": "first", "applicable": False},
            {"name": "second", "result": Result.status_changed()},
            {"name": "third"},
        )

        run = pipeline.run(Context(), sample, client=None, recorder=None)

        assert run.result.kind == ResultKind.STATUS_CHANGED
        assert run.action == "second"
        assert [c for c in calls if c[0] == "handle"] == [("handle", "second")]
        assert ("can_handle", "third") not in calls

    def test_continue_moves_on(self, sample):
        pipeline, calls = _pipeline(
            {"name": "first"},
            {"name": "second", "result": Result.requeue(5)},
        )

        run = pipeline.run(Context(), sample, client=None, recorder=None)

        assert run.result.kind == ResultKind.REQUEUE
        assert run.action == "second"
        assert ("handle", "first") in calls

    def test_converged_when_nothing_applies(self, sample):
        pipeline, _ = _pipeline({"name": "first", "applicable": False}, {"name": "second", "applicable": False})

        run = pipeline.run(Context(), sample, client=None, recorder=None)

        assert run.converged
        assert run.action is None

    def test_handle_exception_becomes_failed(self, sample):
        """Test that errors never escape the pipeline."""
        error = RuntimeError("boom")
        pipeline, _ = _pipeline({"name": "first", "error": error})

        run = pipeline.run(Context(), sample, client=None, recorder=None)

        assert run.result.is_failed
        assert run.result.error is error
        assert run.action == "first"

    def test_deadline_checked_before_each_action(self, sample, clock):
        pipeline, calls = _pipeline({"name": "first"})
        ctx = Context.with_timeout(1.0, clock=clock)
        clock.advance(2.0)

        run = pipeline.run(ctx, sample, client=None, recorder=None)

        assert run.result.is_failed
        assert isinstance(run.result.error, DeadlineExceededError)
        assert calls == []

    def test_fresh_actions_each_run(self, sample):
        """Test that actions are rebuilt so no state leaks between runs."""
        pipeline, _ = _pipeline({"name": "first"})

        assert pipeline.actions()[0] is not pipeline.actions()[0]
        assert pipeline.action_names() == ["first"]

    def test_collaborators_are_injected(self, sample):
        client, recorder = MagicMock(), MagicMock()
        seen = []

        class Recording(BaseAction):
            name = "recording action"

            def can_handle(self, ctx, instance):
                seen.append((self.client, self.recorder, self.logger.name))
                return False

            def handle(self, ctx, instance):
                return self.continue_()

        Pipeline("sample", [Recording]).run(Context(), sample, client, recorder)

        assert seen == [(client, recorder, "securesign_engine.pipeline.sample.recording-action")]


class TestBaseAction:
    """Test cases for the BaseAction helpers."""

    def test_record_event(self, sample):
        recorder = MagicMock()
        action = RecordingAction("first", [])
        action.inject(None, recorder, MagicMock())

        action.record_event(sample, "ThingCreated", "created")

        ref, event_type, reason, message = recorder.record.call_args.args
        assert ref.kind == "Sample"
        assert ref.name == "sample"
        assert event_type == EventType.NORMAL
        assert (reason, message) == ("ThingCreated", "created")

    def test_record_event_never_raises(self, sample):
        recorder = MagicMock()
        recorder.record.side_effect = RuntimeError("api down")
        action = RecordingAction("first", [])
        action.inject(None, recorder, MagicMock())

        action.record_event(sample, "ThingCreated", "created")

    def test_status_mutation_survives_run(self, sample):
        """Test that the pipeline mutates the instance in place."""

        class SetUrl(BaseAction):
            name = "url"

            def can_handle(self, ctx, instance):
                return instance.status.url is None

            def handle(self, ctx, instance):
                instance.status.url = "http://server.ns.svc"
                instance.conditions.set("ServerAvailable", ConditionStatus.TRUE, Reason.READY)
                return self.status_update()

        pipeline = Pipeline("sample", [SetUrl])

        assert pipeline.run(Context(), sample, None, None).result.kind == ResultKind.STATUS_CHANGED
        assert pipeline.run(Context(), sample, None, None).converged
        assert sample.to_body()["status"]["url"] == "http://server.ns.svc"
