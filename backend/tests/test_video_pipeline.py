import asyncio
from pathlib import Path

import pytest

from helpers import FailingNarrator, FakeEngine, FakeNarrator, make_store
from property_video.errors import GenerationInProgressError, NoPhotosError, NotFoundError
from property_video.models.video import VideoStatus
from property_video.services.render_requests import AudioMixRequest, ConcatRequest, SegmentRequest
from property_video.services.video_assembler import VideoAssembler
from property_video.workers.video_pipeline import VideoGenerator


def _run_scenario(tmp_path, scenario):
    async def main():
        store, engine = await make_store(tmp_path / "pipeline.db")
        try:
            await scenario(store)
        finally:
            await engine.dispose()

    asyncio.run(main())


async def _create_video_with_photos(store, settings, photo_count=2, **fields):
    video = await store.create_video(
        street_address="12 Ocean Drive", city="Miami", state="FL", zip_code="33139",
        price="$1,250,000", contact_name="Jane Realtor", slide_duration=5, **fields,
    )
    for i in range(photo_count):
        stored = f"v{video.id}-{i}.jpg"
        (Path(settings.UPLOAD_DIR) / stored).write_bytes(b"jpeg")
        await store.create_photo(video.id, f"room-{i}.jpg", stored, order=i)
    return video


def _generator(store, settings, narrator=None, engine=None):
    return VideoGenerator(
        store=store,
        narrator=narrator or FakeNarrator(settings.AUDIO_DIR),
        assembler=VideoAssembler(engine or FakeEngine(), settings),
        settings=settings,
    )


def _temp_leftovers(settings):
    return list(Path(settings.TEMP_DIR).rglob("*"))


def test_generate_without_photos_leaves_status_unchanged(tmp_path, test_settings):
    async def scenario(store):
        video = await store.create_video(address="1 Main St", price="100000", contact_name="Bob")
        generator = _generator(store, test_settings)

        with pytest.raises(NoPhotosError):
            await generator.generate(video.id)

        assert (await store.get_video(video.id)).status == VideoStatus.PENDING.value

    _run_scenario(tmp_path, scenario)


def test_generate_unknown_video(tmp_path, test_settings):
    async def scenario(store):
        with pytest.raises(NotFoundError):
            await _generator(store, test_settings).generate(999)

    _run_scenario(tmp_path, scenario)


def test_generate_returns_processing_then_completes_with_narration(tmp_path, test_settings):
    (Path(test_settings.MUSIC_DIR) / "upbeat-modern-home.mp3").write_bytes(b"mp3")
    engine = FakeEngine()

    async def scenario(store):
        video = await _create_video_with_photos(store, test_settings)
        generator = _generator(store, test_settings, engine=engine)

        started = await generator.generate(video.id)
        assert started.status == VideoStatus.PROCESSING.value

        await generator.wait(video.id)
        done = await store.get_video(video.id)
        assert done.status == VideoStatus.COMPLETED.value
        assert done.video_url.startswith(f"/videos/property-video-{video.id}-")
        assert done.narration_url == f"/audio/narration-{video.id}.mp3"
        assert done.ai_description == "A lovely home by the sea."

    _run_scenario(tmp_path, scenario)

    mix = next(r for r in engine.requests if isinstance(r, AudioMixRequest))
    assert len(mix.inputs) == 2
    assert _temp_leftovers(test_settings) == []


def test_narration_failure_falls_back_to_plain_render(tmp_path, test_settings):
    engine = FakeEngine()

    async def scenario(store):
        video = await _create_video_with_photos(store, test_settings)
        generator = _generator(store, test_settings, narrator=FailingNarrator(), engine=engine)

        await generator.generate(video.id)
        await generator.wait(video.id)

        done = await store.get_video(video.id)
        assert done.status == VideoStatus.COMPLETED.value
        assert done.video_url is not None
        assert done.narration_url is None

    _run_scenario(tmp_path, scenario)
    assert not any(isinstance(r, AudioMixRequest) for r in engine.requests)


def test_stale_narration_not_reused_after_narration_failure(tmp_path, test_settings):
    (Path(test_settings.AUDIO_DIR) / "old.mp3").write_bytes(b"mp3")
    engine = FakeEngine()

    async def scenario(store):
        video = await _create_video_with_photos(store, test_settings)
        await store.update_narration(video.id, "Old script", "/audio/old.mp3")
        generator = _generator(store, test_settings, narrator=FailingNarrator(), engine=engine)

        await generator.generate(video.id)
        await generator.wait(video.id)

        assert (await store.get_video(video.id)).status == VideoStatus.COMPLETED.value

    _run_scenario(tmp_path, scenario)
    assert not any(isinstance(r, AudioMixRequest) for r in engine.requests)


@pytest.mark.parametrize("narrator_cls", [FakeNarrator, FailingNarrator])
def test_cancel_before_render_check_prevents_rendering(tmp_path, test_settings, narrator_cls):
    engine = FakeEngine()

    async def scenario(store):
        video = await _create_video_with_photos(store, test_settings)
        holder = {}

        async def cancel_during_narration(v):
            await holder["generator"].cancel(v.id)

        if narrator_cls is FakeNarrator:
            narrator = FakeNarrator(test_settings.AUDIO_DIR, on_narrate=cancel_during_narration)
        else:
            narrator = FailingNarrator(on_narrate=cancel_during_narration)
        generator = _generator(store, test_settings, narrator=narrator, engine=engine)
        holder["generator"] = generator

        await generator.generate(video.id)
        await generator.wait(video.id)

        done = await store.get_video(video.id)
        assert done.status == VideoStatus.CANCELLED.value
        assert done.video_url is None

    _run_scenario(tmp_path, scenario)
    assert engine.requests == []


def test_cancel_during_render_has_no_effect(tmp_path, test_settings):
    async def scenario(store):
        video = await _create_video_with_photos(store, test_settings)
        holder = {}
        seen = []

        async def cancel_once_rendering(request):
            if isinstance(request, SegmentRequest) and "cancel_response" not in holder:
                holder["cancel_response"] = await holder["generator"].cancel(video.id)
            seen.append((await store.get_video(video.id)).status)

        generator = _generator(store, test_settings, engine=FakeEngine(on_run=cancel_once_rendering))
        holder["generator"] = generator

        await generator.generate(video.id)
        await generator.wait(video.id)

        assert holder["cancel_response"].status == VideoStatus.PROCESSING.value
        assert set(seen) == {VideoStatus.PROCESSING.value}
        done = await store.get_video(video.id)
        assert done.status == VideoStatus.COMPLETED.value
        assert done.video_url is not None

    _run_scenario(tmp_path, scenario)


def test_concurrent_generate_starts_a_single_render(tmp_path, test_settings):
    engine = FakeEngine()

    async def scenario(store):
        video = await _create_video_with_photos(store, test_settings)
        generator = _generator(store, test_settings, engine=engine)

        results = await asyncio.gather(
            generator.generate(video.id), generator.generate(video.id), return_exceptions=True
        )
        await generator.wait(video.id)

        rejected = [r for r in results if isinstance(r, GenerationInProgressError)]
        started = [r for r in results if not isinstance(r, BaseException)]
        assert len(rejected) == 1 and len(started) == 1
        assert (await store.get_video(video.id)).status == VideoStatus.COMPLETED.value

        # La réservation est libérée après un échec de validation
        empty = await store.create_video(address="2 Main St")
        for _ in range(2):
            with pytest.raises(NoPhotosError):
                await generator.generate(empty.id)

    _run_scenario(tmp_path, scenario)
    assert sum(isinstance(r, ConcatRequest) for r in engine.requests) == 1


def test_unexpected_narration_error_falls_back(tmp_path, test_settings):
    engine = FakeEngine()

    async def scenario(store):
        video = await _create_video_with_photos(store, test_settings)
        narrator = FailingNarrator("list index out of range", error=IndexError)
        generator = _generator(store, test_settings, narrator=narrator, engine=engine)

        await generator.generate(video.id)
        await generator.wait(video.id)

        done = await store.get_video(video.id)
        assert done.status == VideoStatus.COMPLETED.value
        assert done.video_url is not None
        assert done.narration_url is None

    _run_scenario(tmp_path, scenario)
    assert any(isinstance(r, ConcatRequest) for r in engine.requests)


def test_render_failure_sets_error_without_video_url(tmp_path, test_settings):
    async def scenario(store):
        video = await _create_video_with_photos(store, test_settings)
        generator = _generator(store, test_settings, engine=FakeEngine(fail_on=ConcatRequest))

        await generator.generate(video.id)
        await generator.wait(video.id)

        done = await store.get_video(video.id)
        assert done.status == VideoStatus.ERROR.value
        assert done.video_url is None
        assert "concatenation" in done.error_message

    _run_scenario(tmp_path, scenario)
    assert _temp_leftovers(test_settings) == []
    assert list(Path(test_settings.VIDEO_DIR).iterdir()) == []


def test_cancel_is_noop_outside_processing(tmp_path, test_settings):
    async def scenario(store):
        video = await _create_video_with_photos(store, test_settings)
        generator = _generator(store, test_settings)

        assert (await generator.cancel(video.id)).status == VideoStatus.PENDING.value

        await generator.generate(video.id)
        await generator.wait(video.id)
        assert (await generator.cancel(video.id)).status == VideoStatus.COMPLETED.value

    _run_scenario(tmp_path, scenario)


def test_missing_fields_get_placeholders(tmp_path, test_settings):
    async def scenario(store):
        video = await store.create_video(address="", price="", contact_name="")
        (Path(test_settings.UPLOAD_DIR) / "only.jpg").write_bytes(b"jpeg")
        await store.create_photo(video.id, "only.jpg", "only.jpg", order=0)
        generator = _generator(store, test_settings)

        await generator.generate(video.id)
        await generator.wait(video.id)

        done = await store.get_video(video.id)
        assert done.address == "Beautiful Property"
        assert done.price == "$375,000"
        assert done.contact_name == "Property Owner"
        assert done.status == VideoStatus.COMPLETED.value

    _run_scenario(tmp_path, scenario)


def test_second_generate_while_running_is_rejected(tmp_path, test_settings):
    async def scenario(store):
        video = await _create_video_with_photos(store, test_settings)
        release = asyncio.Event()

        async def hold(_video):
            await release.wait()

        generator = _generator(
            store, test_settings, narrator=FakeNarrator(test_settings.AUDIO_DIR, on_narrate=hold)
        )
        await generator.generate(video.id)

        with pytest.raises(GenerationInProgressError):
            await generator.generate(video.id)

        release.set()
        await generator.wait(video.id)

        # Régénération autorisée une fois terminé
        await generator.generate(video.id)
        await generator.wait(video.id)
        assert (await store.get_video(video.id)).status == VideoStatus.COMPLETED.value

    _run_scenario(tmp_path, scenario)
