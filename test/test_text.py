import pytest

from turnguard.postprocess.text import (
    jaccard_similarity,
    normalize_no_punct,
    opener_norm,
    sentence_metrics,
    split_sentences,
    strip_leading_emoji,
)


def test_opener_norm_strips_emoji_and_punctuation():
    assert opener_norm("😊 Hey there, how are you doing today?") == "hey there how are you doing today"


def test_opener_norm_keeps_apostrophes():
    assert opener_norm("I'm glad you're here!") == "i'm glad you're here"


def test_opener_norm_keeps_hangul():
    assert opener_norm("안녕! 오늘 어때?") == "안녕 오늘 어때"


def test_opener_norm_lowercases_ascii_only():
    assert opener_norm("École Is Great") == "École is great"


def test_opener_norm_token_cap():
    words = " ".join(f"w{i}" for i in range(20))
    assert opener_norm(words).split() == [f"w{i}" for i in range(12)]
    assert opener_norm(words, max_tokens=3) == "w0 w1 w2"


def test_opener_norm_empty():
    assert opener_norm("") == ""
    assert opener_norm("🎉🎉") == ""


def test_strip_leading_emoji_flags_and_sequences():
    assert strip_leading_emoji("🎉🎉 Party time") == "Party time"
    assert strip_leading_emoji("🇰🇷 안녕") == "안녕"
    assert strip_leading_emoji("👨‍👩‍👧 family") == "family"
    # only the leading run is removed
    assert strip_leading_emoji("nice 👍") == "nice 👍"


def test_normalize_no_punct():
    assert normalize_no_punct("Hello\u200bWorld!") == "helloworld"
    assert normalize_no_punct("ＡＢＣ   def.") == "abc def"


@pytest.mark.parametrize(
    "a,b,expected",
    [
        ("hi there", "hello world", 0.0),
        ("a b c d", "a b c e", 1 / 3),
        ("one two three four", "one two three four", 1.0),
        ("", "one two three", 0.0),
    ],
)
def test_jaccard_similarity(a, b, expected):
    assert jaccard_similarity(a, b) == pytest.approx(expected)


def test_split_sentences_handles_cjk_terminators():
    assert split_sentences("좋아요。정말？네！") == ["좋아요", "정말", "네"]


def test_sentence_metrics():
    m = sentence_metrics("Hi there. How are you? Great!")
    assert (m.sentence_count, m.total_words, m.avg_words_per_sentence) == (3, 6, 2.0)

    m = sentence_metrics("Hello world. This is a longer test sentence.")
    assert (m.sentence_count, m.total_words, m.avg_words_per_sentence) == (2, 8, 4.0)


def test_sentence_metrics_korean_and_empty():
    assert sentence_metrics("안녕하세요. 반가워요! 잘 지내요?").sentence_count == 3
    empty = sentence_metrics("")
    assert (empty.sentence_count, empty.total_words, empty.avg_words_per_sentence) == (0, 0, 0.0)


def test_typographic_apostrophes_are_kept():
    assert opener_norm("I\u2019m glad you\u2019re here") == "i'm glad you're here"
    assert normalize_no_punct("Don\u2019t worry!") == "don't worry"
