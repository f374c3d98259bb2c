from unittest.mock import MagicMock

import pytest
from conftest import FakeDriver

from narration.player import PlaybackCallbacks, SpeechPlayer, SpeechSettings

TEXT = "One. Two. Three."


@pytest.fixture
def player(driver):
    p = SpeechPlayer(driver)
    p.load_text(TEXT, book_id="book-1")
    return p


def _recorder(player):
    calls = []
    player.subscribe(
        PlaybackCallbacks(
            on_start=lambda: calls.append("start"),
            on_pause=lambda: calls.append("pause"),
            on_resume=lambda: calls.append("resume"),
            on_stop=lambda: calls.append("stop"),
            on_complete=lambda: calls.append("complete"),
            on_sentence_start=lambda s, i: calls.append(("sentence", i)),
            on_error=lambda msg: calls.append(("error", msg)),
        )
    )
    return calls


def test_load_text_segments_and_resets(player):
    state = player.state

    assert [s.text for s in player.sentences] == ["One.", "Two.", "Three."]
    assert state.total_sentences == 3
    assert state.current_sentence == 0
    assert state.book_id == "book-1"
    assert not state.is_playing


def test_play_without_text_raises(driver):
    with pytest.raises(RuntimeError):
        SpeechPlayer(driver).play()


def test_play_speaks_every_sentence_then_completes(player, driver):
    calls = _recorder(player)
    progress = []
    player.subscribe(PlaybackCallbacks(on_progress=progress.append))

    player.play()

    assert len(driver.spoken) == 3
    assert calls == ["start", ("sentence", 0), ("sentence", 1), ("sentence", 2), "complete"]
    assert progress == pytest.approx([100 / 3, 200 / 3])
    state = player.state
    assert not state.is_playing
    assert state.current_sentence == 0


def test_driver_receives_paused_text_but_sentences_stay_clean(player, driver):
    player.play()

    assert driver.spoken[0] == "One." + " " * 5
    assert player.sentences[0].text == "One."


def test_smart_pauses_can_be_disabled(driver):
    p = SpeechPlayer(driver, SpeechSettings(smart_pauses=False))
    p.load_text(TEXT)

    p.play()

    assert driver.spoken == ["One.", "Two.", "Three."]


def test_stop_keeps_sentences_and_resumes_from_current():
    driver = FakeDriver()
    p = SpeechPlayer(driver)
    p.load_text(TEXT)
    calls = _recorder(p)
    driver.hooks = {1: lambda done, error: p.stop()}

    p.play()

    assert calls.count("stop") == 1
    assert p.state.current_sentence == 1
    assert p.state.position.character_index == p.sentences[1].start_index
    assert len(p.sentences) == 3

    p.stop()
    assert calls.count("stop") == 1

    driver.hooks = {}
    p.play()
    assert [t.strip() for t in driver.spoken] == ["One.", "Two.", "Two.", "Three."]


def test_pause_and_resume():
    driver = FakeDriver()
    p = SpeechPlayer(driver)
    p.load_text(TEXT)
    calls = _recorder(p)
    driver.hooks = {0: lambda done, error: p.pause()}

    p.play()
    assert p.state.is_paused
    assert not p.state.is_playing

    p.resume()
    assert "pause" in calls and "resume" in calls
    assert len(driver.spoken) == 4
    assert calls[-1] == "complete"


def test_driver_error_is_reported_not_raised():
    driver = FakeDriver(hooks={0: lambda done, error: error(RuntimeError("device busy"))})
    p = SpeechPlayer(driver)
    p.load_text(TEXT)
    calls = _recorder(p)

    p.play()

    assert p.state.error == "device busy"
    assert not p.state.is_playing
    assert ("error", "device busy") in calls
    assert "complete" not in calls


def test_driver_exception_in_speak_is_reported():
    def explode(done, error):
        raise OSError("no audio device")

    p = SpeechPlayer(FakeDriver(hooks={0: explode}))
    p.load_text(TEXT)

    p.play()

    assert p.state.error == "no audio device"


def test_silent_driver_times_out():
    driver = FakeDriver(hooks={0: lambda done, error: None})
    p = SpeechPlayer(driver, SpeechSettings(sentence_timeout=0.05))
    p.load_text(TEXT)

    p.play()

    assert "did not finish" in p.state.error
    assert driver.stop_calls >= 1


def test_seek_while_playing_restarts_there():
    driver = FakeDriver()
    p = SpeechPlayer(driver)
    p.load_text(TEXT)
    driver.hooks = {0: lambda done, error: p.seek_to_sentence(2)}

    p.play()

    assert len(driver.spoken) == 2
    assert driver.spoken[1].startswith("Three.")
    assert p.state.current_sentence == 0


def test_seek_out_of_range(player):
    with pytest.raises(IndexError):
        player.seek_to_sentence(3)
    with pytest.raises(IndexError):
        player.seek_to_sentence(-1)


def test_next_and_previous_while_stopped(player):
    calls = _recorder(player)

    player.next_sentence()
    assert player.state.current_sentence == 1
    player.previous_sentence()
    player.previous_sentence()
    assert player.state.current_sentence == 0

    player.seek_to_sentence(2)
    player.next_sentence()
    assert player.state.current_sentence == 0
    assert calls[-1] == "complete"


def test_voice_change_restarts_current_sentence():
    driver = FakeDriver()
    p = SpeechPlayer(driver)
    p.load_text(TEXT)
    driver.hooks = {0: lambda done, error: p.update_settings(voice="alto")}

    p.play()

    assert driver.voices[0].voice is None
    assert driver.voices[1].voice == "alto"
    assert driver.spoken[1] == driver.spoken[0]
    assert len(driver.spoken) == 4


def test_unsubscribe(player):
    listener = MagicMock()
    unsubscribe = player.subscribe(PlaybackCallbacks(on_start=listener))
    unsubscribe()

    player.play()

    listener.assert_not_called()


def test_failing_callback_does_not_break_playback(player, driver):
    player.subscribe(PlaybackCallbacks(on_sentence_start=MagicMock(side_effect=ValueError)))

    player.play()

    assert len(driver.spoken) == 3
    assert player.state.error is None


def test_highlights_track_current_sentence(player):
    player.seek_to_sentence(1)

    [h] = player.highlights()

    assert h.sentence_id == "sentence-1"
    assert h.color == "#FFD700"
    assert not h.is_active
    assert (h.start_index, h.end_index) == (5, 9)


def test_dispose_clears_everything(player):
    player.dispose()

    assert player.sentences == []
    assert player.current_sentence is None
    assert player.highlights() == []


def test_driver_contract(driver, player):
    assert driver.available_voices() == []
    assert driver.driver_name == "fake"
    assert repr(player) == "SpeechPlayer(fake, stopped, sentence 0/3)"


def test_driver_must_implement_speak():
    from narration.driver import SpeechDriver

    class Incomplete(SpeechDriver):
        def stop(self):
            pass

        @property
        def driver_name(self):
            return "incomplete"

    with pytest.raises(TypeError):
        Incomplete()
