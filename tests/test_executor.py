"""Tests for the background render executor.

WHY: submit() must return before any rendering happens, and whatever
the encoder does (report odd percentages, crash, succeed) the job has to
end in exactly one terminal state with its subtitle artifact cleaned up.

HOW: The executor runs against a FakeEncoder and a real
InMemoryJobRepository. Each test drives its coroutine with asyncio.run.
"""

import asyncio

import pytest

from caption_studio.core.ir import CaptionStyle, TextLayer, WordLayer
from caption_studio.render.encoder import RenderError
from caption_studio.render.executor import ExportSpec, RenderExecutor
from caption_studio.server.jobs import InMemoryJobRepository, JobStatus


@pytest.fixture
def repo():
    return InMemoryJobRepository()


def _executor(repo, encoder, tmp_path):
    return RenderExecutor(
        repo,
        encoder=encoder,
        exports_dir=tmp_path / "exports",
        temp_dir=tmp_path / "temp",
        download_base_url="http://localhost:3000/exports/",
    )


def _word_layer_spec():
    return ExportSpec(
        video_path="input.mp4",
        layers=[WordLayer(text="hello", start_time=0.4, end_time=0.6)],
    )


class TestSubmit:

    def test_word_layer_export_lifecycle(self, repo, fake_encoder, tmp_path):
        executor = _executor(repo, fake_encoder, tmp_path)

        async def run():
            job_id = executor.submit(_word_layer_spec())
            first = executor.get_progress(job_id)
            final = await executor.wait(job_id)
            return first, final

        first, final = asyncio.run(run())

        assert first.status == JobStatus.PROCESSING
        assert first.progress == 0
        assert final.status == JobStatus.COMPLETE
        assert final.progress == 100
        assert final.download_url == "http://localhost:3000/exports/export_{}.mp4".format(final.id)
        assert final.error is None

    def test_encoder_receives_program(self, repo, fake_encoder, tmp_path, hello_world_words):
        executor = _executor(repo, fake_encoder, tmp_path)
        spec = ExportSpec(
            video_path="input.mp4",
            layers=[TextLayer(text="Title", left=10, top=20)],
            word_timestamps=hello_world_words,
        )

        async def run():
            job_id = executor.submit(spec)
            await executor.wait(job_id)
            return job_id

        job_id = asyncio.run(run())
        call = fake_encoder.calls[0]
        assert call["input_path"] == "input.mp4"
        assert call["output_path"] == str(tmp_path / "exports" / "export_{}.mp4".format(job_id))
        assert "subtitles_{}.srt".format(job_id) in call["filter_chain"]
        assert "drawtext=text='Title'" in call["filter_chain"]

    def test_progress_clamped_below_100(self, repo, make_encoder, tmp_path):
        seen = []
        encoder = make_encoder(percents=[-10.0, 42.4, 150.0])
        executor = _executor(repo, encoder, tmp_path)
        original = executor._report_progress

        def spy(job_id, percent):
            original(job_id, percent)
            seen.append(repo.get(job_id).progress)

        executor._report_progress = spy

        async def run():
            job_id = executor.submit(_word_layer_spec())
            return await executor.wait(job_id)

        final = asyncio.run(run())
        assert seen == [0, 42, 99]
        assert final.progress == 100

    def test_progress_never_decreases(self, repo, make_encoder, tmp_path):
        seen = []
        executor = _executor(repo, make_encoder(percents=[50.0, 20.0, 60.0]), tmp_path)
        original = executor._report_progress

        def spy(job_id, percent):
            original(job_id, percent)
            seen.append(repo.get(job_id).progress)

        executor._report_progress = spy

        async def run():
            await executor.wait(executor.submit(_word_layer_spec()))

        asyncio.run(run())
        assert seen == [50, 50, 60]

    def test_encoder_failure_marks_job_failed(self, repo, make_encoder, tmp_path):
        encoder = make_encoder(percents=[30.0], error=RenderError("ffmpeg exited with code 1"))
        executor = _executor(repo, encoder, tmp_path)

        async def run():
            return await executor.wait(executor.submit(_word_layer_spec()))

        final = asyncio.run(run())
        assert final.status == JobStatus.FAILED
        assert final.error == "ffmpeg exited with code 1"
        assert final.download_url is None
        assert final.progress == 30

    def test_invalid_colour_fails_job(self, repo, fake_encoder, tmp_path):
        executor = _executor(repo, fake_encoder, tmp_path)
        spec = ExportSpec(video_path="input.mp4", layers=[TextLayer(text="x", fill="white")])

        async def run():
            return await executor.wait(executor.submit(spec))

        final = asyncio.run(run())
        assert final.status == JobStatus.FAILED
        assert "Invalid hex colour" in final.error
        assert fake_encoder.calls == []

    @pytest.mark.parametrize("error", [None, RenderError("boom")])
    def test_subtitle_artifact_removed(self, repo, make_encoder, tmp_path, hello_world_words, error):
        written = []

        class CheckingEncoder(make_encoder):
            async def run(self, input_path, filter_chain, output_path, on_progress=None):
                written.extend(p.name for p in (tmp_path / "temp").iterdir())
                await super().run(input_path, filter_chain, output_path, on_progress)

        executor = _executor(repo, CheckingEncoder(error=error), tmp_path)
        spec = ExportSpec(video_path="input.mp4", word_timestamps=hello_world_words)

        async def run():
            return await executor.wait(executor.submit(spec))

        final = asyncio.run(run())
        assert written == ["subtitles_{}.srt".format(final.id)]
        assert list((tmp_path / "temp").iterdir()) == []

    def test_style_snapshot_taken_at_submit(self, repo, fake_encoder, tmp_path):
        executor = _executor(repo, fake_encoder, tmp_path)
        layer = WordLayer(text="hello", start_time=0.4, end_time=0.6)
        spec = ExportSpec(video_path="input.mp4", layers=[layer], caption_style=CaptionStyle())

        async def run():
            job_id = executor.submit(spec)
            # Editor keeps changing things after submit.
            layer.text = "changed"
            spec.caption_style = CaptionStyle(font_size=10)
            await executor.wait(job_id)

        asyncio.run(run())
        chain = fake_encoder.calls[0]["filter_chain"]
        assert "text='hello'" in chain
        assert "fontsize=80" in chain

    def test_jobs_run_concurrently(self, repo, fake_encoder, tmp_path):
        executor = _executor(repo, fake_encoder, tmp_path)

        async def run():
            ids = [executor.submit(_word_layer_spec()) for _ in range(3)]
            return [await executor.wait(job_id) for job_id in ids]

        finals = asyncio.run(run())
        assert len({job.id for job in finals}) == 3
        assert all(job.status == JobStatus.COMPLETE for job in finals)

    def test_unknown_job(self, repo, fake_encoder, tmp_path):
        executor = _executor(repo, fake_encoder, tmp_path)
        assert executor.get_progress("missing") is None
        assert asyncio.run(executor.wait("missing")) is None
