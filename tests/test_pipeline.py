import pytest

from slideit.kernel.errors import ProblemDetails
from slideit.models.slide import JobStage, JobStatus, SourceKind
from slideit.pipeline.encode import slide_count
from slideit.pipeline.runner import ConversionRequest, build_artifact, run_conversion
from slideit.services.tracker import InMemoryJobTracker

from fakes import FakeChat, FakeImageClient, MemoryStore, docx_bytes, make_deps, slides_json

pytestmark = pytest.mark.anyio


class RecordingTracker(InMemoryJobTracker):
    def __init__(self):
        super().__init__()
        self.snapshots = []

    async def update(self, job_id, **changes):
        job = await super().update(job_id, **changes)
        self.snapshots.append((job.stage, job.progress_percent))
        return job


def _topic(topic="Climate Change", n=3):
    return ConversionRequest(SourceKind.AI_TOPIC, "user-1", topic, n, topic)


async def _only_job(tracker, owner="user-1"):
    jobs = await tracker.list_for_owner(owner)
    assert len(jobs) == 1
    return jobs[0]


async def test_topic_conversion_end_to_end():
    chat = FakeChat(slides_json(3))
    tracker = RecordingTracker()
    store = MemoryStore()
    deps = make_deps(chat=chat, tracker=tracker, store=store)

    result = await run_conversion(deps, _topic())

    assert len(chat.calls) == 1
    assert "Climate Change" in chat.calls[0][-1].content
    assert len(result.slides) == 3
    assert all(s.image_data for s in result.slides)

    job = result.job
    assert job.status == JobStatus.COMPLETED
    assert job.progress_percent == 100
    assert job.artifact_location == result.artifact_location
    key = result.artifact_location.removeprefix("memory://")
    assert key.endswith("/Climate_Change_Presentation.pptx")
    assert slide_count(store.objects[key]) == 3

    progress = [p for _, p in tracker.snapshots]
    assert progress == sorted(progress)
    stages = [s for s, _ in tracker.snapshots]
    assert JobStage.EXTRACTING not in stages
    assert stages[-1] == JobStage.COMPLETED
    assert (JobStage.CONTENT_GENERATED, 40) in tracker.snapshots
    assert (JobStage.ILLUSTRATED, 80) in tracker.snapshots


async def test_malformed_generator_reply_fails_job():
    store = MemoryStore()
    deps = make_deps(chat=FakeChat("not json"), store=store)

    with pytest.raises(ProblemDetails) as e:
        await run_conversion(deps, _topic())
    assert e.value.code == "E_GENERATION_MALFORMED"

    job = await _only_job(deps.tracker)
    assert job.status == JobStatus.FAILED
    assert job.progress_percent == 100
    assert job.error_code == "E_GENERATION_MALFORMED"
    assert job.artifact_location is None
    assert store.objects == {}


async def test_blank_word_document_never_reaches_generator():
    chat = FakeChat(slides_json(3))
    deps = make_deps(chat=chat)
    req = ConversionRequest(SourceKind.WORD, "user-1", "blank.docx", 3, docx_bytes("   "))

    with pytest.raises(ProblemDetails) as e:
        await run_conversion(deps, req)
    assert e.value.code == "E_EXTRACTION_EMPTY"
    assert chat.calls == []
    job = await _only_job(deps.tracker)
    assert job.status == JobStatus.FAILED
    assert job.error_code == "E_EXTRACTION_EMPTY"


async def test_text_source_is_summarised():
    chat = FakeChat(slides_json(2))
    deps = make_deps(chat=chat)
    req = ConversionRequest(SourceKind.TEXT, "user-1", "notes.txt", 2, "Photosynthesis turns light into sugar.")
    result = await run_conversion(deps, req)
    assert "Photosynthesis" in chat.calls[0][-1].content
    assert result.job.source_file_name == "notes.txt"


async def test_image_outage_still_completes():
    deps = make_deps(images=FakeImageClient(always_fail=True))
    result = await run_conversion(deps, _topic())
    assert result.job.status == JobStatus.COMPLETED
    assert all(s.image_data is None for s in result.slides)


async def test_empty_generation_encodes_empty_deck():
    store = MemoryStore()
    deps = make_deps(chat=FakeChat("[]"), store=store)
    result = await run_conversion(deps, _topic())
    assert result.slides == []
    assert slide_count(next(iter(store.objects.values()))) == 0


@pytest.mark.parametrize("n", [0, -2])
async def test_invalid_slide_count_rejected_before_job(n):
    deps = make_deps()
    with pytest.raises(ProblemDetails) as e:
        await run_conversion(deps, _topic(n=n))
    assert e.value.code == "E_INVALID_REQUEST"
    assert await deps.tracker.list_for_owner("user-1") == []


async def test_upload_failure_fails_job():
    from slideit.kernel.errors import UploadFailed

    deps = make_deps(store=MemoryStore(error=UploadFailed("bucket gone")))
    with pytest.raises(ProblemDetails) as e:
        await run_conversion(deps, _topic())
    assert e.value.code == "E_UPLOAD_FAILED"
    assert (await _only_job(deps.tracker)).error_code == "E_UPLOAD_FAILED"


async def test_unexpected_error_is_wrapped_as_internal():
    deps = make_deps(store=MemoryStore(error=KeyError("surprise")))
    with pytest.raises(ProblemDetails) as e:
        await run_conversion(deps, _topic())
    assert e.value.code == "E_INTERNAL"
    assert e.value.status == 500
    job = await _only_job(deps.tracker)
    assert job.status == JobStatus.FAILED
    assert job.progress_percent == 100


async def test_build_artifact_for_download():
    from slideit.models.slide import SlideRecord

    data = await build_artifact([SlideRecord(title="a"), SlideRecord(title="b")])
    assert slide_count(data) == 2


async def test_one_failing_illustration_keeps_deck_and_order():
    import io
    import json

    from pptx import Presentation

    reply = json.dumps({"slides": [
        {"title": "Intro", "bullets": ["what it is"], "imagePrompt": "a warming planet"},
        {"title": "Causes", "bullets": ["emissions"], "imagePrompt": "Causes: smokestacks at dusk"},
        {"title": "Solutions", "bullets": ["renewables"], "imagePrompt": "wind turbines on a hill"},
    ]})
    images = FakeImageClient(fail_on={"Causes"})
    store = MemoryStore()
    deps = make_deps(chat=FakeChat(reply), images=images, store=store)

    result = await run_conversion(deps, _topic())

    assert result.job.status == JobStatus.COMPLETED
    assert result.slides[1].image_data is None
    assert result.slides[0].image_data and result.slides[2].image_data
    assert images.prompts.count("Causes: smokestacks at dusk") == 2

    key = result.artifact_location.removeprefix("memory://")
    deck = Presentation(io.BytesIO(store.objects[key]))
    titles = [next(sh for sh in slide.shapes if sh.has_text_frame).text_frame.text for slide in deck.slides]
    assert titles == ["Intro", "Causes", "Solutions"]


async def test_stray_image_data_from_generator_does_not_fail_job():
    reply = '[{"title": "A", "bullets": ["x"], "imageData": 7}]'
    result = await run_conversion(make_deps(chat=FakeChat(reply)), _topic(n=1))
    assert result.job.status == JobStatus.COMPLETED
    assert result.slides[0].title == "A"


async def test_wrongly_typed_slide_field_fails_with_shape_error():
    reply = '[{"title": "A", "bullets": ["x"], "imagePrompt": ["not", "a"]}]'
    deps = make_deps(chat=FakeChat(reply))
    with pytest.raises(ProblemDetails) as e:
        await run_conversion(deps, _topic(n=1))
    assert e.value.code == "E_INVALID_SLIDE_SHAPE"
    assert (await _only_job(deps.tracker)).error_code == "E_INVALID_SLIDE_SHAPE"
