import sqlite3
from concurrent.futures import ThreadPoolExecutor

import pytest

from turnguard.config import Settings
from turnguard.postprocess import PostProcessor, SqliteMessageHistory, opener_norm
from turnguard.postprocess.rewrite import (
    enforce_intimacy_cap,
    rewrite_opener,
    rewrite_shorter,
    violates_intimacy_cap,
)
from turnguard.types import RecentMessage, RelationshipStage, Violation


# ---------------- rewrite helpers ----------------
def test_rewrite_opener_drops_greeting():
    assert rewrite_opener("Hello there friend", set()) == "there friend"


def test_rewrite_opener_uses_unused_transition():
    used = {"actually thanks for sharing that"}
    assert rewrite_opener("Thanks for sharing that", used) == "Honestly, thanks for sharing that"


def test_rewrite_opener_moves_first_clause():
    content = "Sure thing, I can help with that today"
    used = {opener_norm(f"{t}, sure thing, I can help with that today") for t in ("Actually", "Honestly", "Hmm")}
    assert rewrite_opener(content, used) == "I can help with that today - sure thing"


def test_rewrite_opener_falls_back_to_well():
    used = {"actually sure ok", "honestly sure ok", "hmm sure ok"}
    assert rewrite_opener("Sure, ok", used) == "Well, sure, ok"


def test_rewrite_shorter():
    assert rewrite_shorter("First one. Second one.") == "First one."
    long_one = " ".join(f"w{i}" for i in range(20))
    assert rewrite_shorter(long_one) == " ".join(f"w{i}" for i in range(15)) + "..."
    assert rewrite_shorter("short and sweet") == "short and sweet"


def test_intimacy_cap_by_stage():
    assert violates_intimacy_cap("I love you", RelationshipStage.STRANGER) is True
    assert violates_intimacy_cap("I love you", RelationshipStage.FRIEND) is False
    assert violates_intimacy_cap("You're my world", RelationshipStage.CLOSE_FRIEND) is True
    assert enforce_intimacy_cap("I miss you!", RelationshipStage.ACQUAINTANCE) == "Nice to chat again!"
    assert enforce_intimacy_cap("We're meant to be", RelationshipStage.STRANGER) == "I'm glad we're talking"


# ---------------- opener / similarity gates ----------------
def test_opener_repetition_rewritten(make_processor, make_input):
    draft = "Hey! How are you doing today? I really hope you're well!"
    recent = (RecentMessage("Something unrelated entirely here", opener_norm(draft)),)
    res = make_processor(recent).process(make_input(draft_content=draft))
    assert res.violations == (Violation.OPENER_REPETITION,)
    assert res.rewrite_attempts == 1
    assert res.content == "How are you doing today? I really hope you're well!"
    assert res.opener_norm != opener_norm(draft)


def test_similar_single_sentence_kept_with_violation(make_processor, make_input):
    draft = "hey there how are you doing today i hope you are well and happy"
    recent = (RecentMessage("hey there how are you doing today i hope you are well"),)
    res = make_processor(recent).process(make_input(draft_content=draft))
    assert res.violations == (Violation.MESSAGE_SIMILARITY,)
    assert res.rewrite_attempts == 1
    assert res.content == draft


def test_similar_message_shortened(make_processor, make_input):
    draft = "I love that movie too. The ending was great and the music was great too."
    recent = (RecentMessage("i love that movie too the ending was great and the music was great too"),)
    res = make_processor(recent).process(make_input(draft_content=draft))
    assert res.content == "I love that movie too."
    assert res.violations == (Violation.MESSAGE_SIMILARITY,)
    assert res.sentence_metrics.sentence_count == 1


def test_clean_draft_passes_through(make_processor, make_input):
    draft = "Good morning! What are your plans?"
    res = make_processor((RecentMessage("i went to the store yesterday", "i went to the store yesterday"),)).process(
        make_input(draft_content=draft)
    )
    assert res.content == draft
    assert res.violations == ()
    assert res.rewrite_attempts == 0
    assert res.opener_norm == "good morning what are your plans"


def test_other_conversations_are_ignored(make_processor, make_input):
    draft = "Hey! How are you doing today?"
    proc = make_processor((RecentMessage("x", opener_norm(draft)),), conversation_id="conv-2")
    assert proc.process(make_input(draft_content=draft)).violations == ()


def test_postprocess_is_deterministic(make_processor, make_input):
    draft = "Hey! How are you doing today? I really hope you're well!"
    recent = (RecentMessage("hey how are you doing today", opener_norm(draft)),)
    proc = make_processor(recent)
    first = proc.process(make_input(draft_content=draft))
    assert all(proc.process(make_input(draft_content=draft)) == first for _ in range(5))


# ---------------- personal fact cap ----------------
def test_personal_fact_cap_truncates(make_processor, make_input):
    res = make_processor().process(make_input(surfaced_memory_ids=("m1", "m2", "m3", "m4")))
    assert res.surfaced_memory_ids == ("m1", "m2")
    assert res.violations == (Violation.PERSONAL_FACT_VIOLATION,)


def test_recall_request_lifts_cap(make_processor, make_input):
    res = make_processor().process(
        make_input(
            surfaced_memory_ids=("m1", "m2", "m3", "m4"),
            user_message="Do you remember what I told you about my job?",
        )
    )
    assert res.surfaced_memory_ids == ("m1", "m2", "m3", "m4")
    assert res.violations == ()


def test_retention_cap_is_one(make_processor, make_input):
    res = make_processor().process(make_input(surfaced_memory_ids=("m1", "m2"), is_retention=True))
    assert res.surfaced_memory_ids == ("m1",)
    assert Violation.PERSONAL_FACT_VIOLATION in res.violations


def test_within_cap_untouched(make_processor, make_input):
    res = make_processor().process(make_input(surfaced_memory_ids=("m1", "m2")))
    assert res.surfaced_memory_ids == ("m1", "m2")
    assert res.violations == ()


def test_custom_recall_phrases(make_processor, make_input):
    proc = make_processor(cfg=Settings(recall_phrases=("Tell me again",)))
    ids = ("m1", "m2", "m3")
    assert proc.process(make_input(surfaced_memory_ids=ids, user_message="tell me again about my sister")).violations == ()
    res = proc.process(make_input(surfaced_memory_ids=ids, user_message="do you remember my sister"))
    assert res.violations == (Violation.PERSONAL_FACT_VIOLATION,)


def test_no_recall_phrases_always_caps(make_processor, make_input):
    proc = make_processor(cfg=Settings(recall_phrases=()))
    res = proc.process(make_input(surfaced_memory_ids=("m1", "m2", "m3"), user_message="do you remember"))
    assert res.surfaced_memory_ids == ("m1", "m2")


# ---------------- intimacy cap ----------------
def test_intimacy_cap_for_strangers(make_processor, make_input):
    res = make_processor().process(
        make_input(draft_content="I love you so much, talk soon!", relationship_stage=RelationshipStage.STRANGER)
    )
    assert res.content == "I appreciate that so much, talk soon!"
    assert res.violations == (Violation.INTIMACY_CAP_VIOLATION,)


def test_intimacy_allowed_for_friends(make_processor, make_input):
    res = make_processor().process(
        make_input(draft_content="I love you, buddy", relationship_stage=RelationshipStage.FRIEND)
    )
    assert res.violations == ()


def test_dependency_phrases_capped_at_every_stage(make_processor, make_input):
    res = make_processor().process(
        make_input(draft_content="Honestly, you're my world.", relationship_stage=RelationshipStage.FRIEND)
    )
    assert res.content == "Honestly, I'm here to support you as a friend."


def test_no_stage_skips_intimacy_gate(make_processor, make_input):
    res = make_processor().process(make_input(draft_content="I love you"))
    assert res.violations == ()


# ---------------- rewrite bound ----------------
BOUND_DRAFT = "I love you, see you soon and take care now"
BOUND_RECENT = (RecentMessage("ok", "i appreciate that see you soon and take care now"),)


def test_multi_pass_rewrite(make_processor, make_input):
    res = make_processor(BOUND_RECENT).process(
        make_input(draft_content=BOUND_DRAFT, relationship_stage=RelationshipStage.STRANGER)
    )
    assert res.rewrite_attempts == 2
    assert res.violations == (Violation.INTIMACY_CAP_VIOLATION, Violation.OPENER_REPETITION)
    assert res.content == "Actually, i appreciate that, see you soon and take care now"


def test_rewrite_bound_reports_remaining_violations(make_processor, make_input):
    proc = make_processor(BOUND_RECENT, cfg=Settings(max_rewrite_passes=1))
    res = proc.process(make_input(draft_content=BOUND_DRAFT, relationship_stage=RelationshipStage.STRANGER))
    assert res.rewrite_attempts == 1
    assert res.violations == (Violation.INTIMACY_CAP_VIOLATION, Violation.OPENER_REPETITION)
    assert res.content == "I appreciate that, see you soon and take care now"


# ---------------- sqlite history ----------------
@pytest.fixture
def chat_db(tmp_path):
    path = tmp_path / "chat.db"
    conn = sqlite3.connect(path)
    conn.execute(
        "CREATE TABLE messages (conversation_id TEXT, role TEXT, status TEXT, "
        "content TEXT, opener_norm TEXT, created_at INTEGER)"
    )
    rows = [
        ("conv-1", "assistant", "COMPLETED", "Oldest reply", "oldest reply", 1),
        ("conv-1", "user", "COMPLETED", "user text", None, 2),
        ("conv-1", "assistant", "FAILED", "Failed reply", "failed reply", 3),
        ("conv-1", "assistant", "COMPLETED", "Hey! How are you doing today?", "hey how are you doing today", 4),
        ("conv-2", "assistant", "COMPLETED", "Other chat", "other chat", 5),
    ]
    conn.executemany("INSERT INTO messages VALUES (?, ?, ?, ?, ?, ?)", rows)
    conn.commit()
    conn.close()
    return str(path)


def test_sqlite_history_reads_completed_assistant_rows(chat_db):
    history = SqliteMessageHistory(chat_db)
    msgs = history.recent_assistant_messages("conv-1", 20)
    assert [m.content for m in msgs] == ["Hey! How are you doing today?", "Oldest reply"]
    assert history.recent_assistant_messages("conv-1", 1)[0].opener_norm == "hey how are you doing today"
    assert history.recent_assistant_messages("missing", 20) == []


def test_process_against_sqlite_history(chat_db, settings, make_input):
    proc = PostProcessor(SqliteMessageHistory(chat_db), settings=settings)
    res = proc.process(make_input(draft_content="Hey! How are you doing today?"))
    assert Violation.OPENER_REPETITION in res.violations
    assert res.content == "How are you doing today?"


def test_result_to_dict(make_processor, make_input):
    out = make_processor().process(make_input(surfaced_memory_ids=("m1", "m2", "m3"))).to_dict()
    assert out["content"] == "Hello, how are you today?"
    assert out["opener_norm"] == "hello how are you today"
    assert out["violations"] == ["PERSONAL_FACT_VIOLATION"]
    assert out["surfaced_memory_ids"] == ["m1", "m2"]
    assert out["sentence_metrics"] == {"sentence_count": 1, "total_words": 5, "avg_words_per_sentence": 5.0}


def test_concurrent_process_matches_serial(make_processor, make_input):
    draft = "Hey! How are you doing today? I really hope you're well!"
    proc = make_processor((RecentMessage("hey how are you doing today", opener_norm(draft)),))
    inputs = [
        make_input(draft_content=draft),
        make_input(surfaced_memory_ids=("m1", "m2", "m3")),
        make_input(draft_content="I love you, see you", relationship_stage=RelationshipStage.STRANGER),
    ] * 20
    expected = [proc.process(i) for i in inputs]
    with ThreadPoolExecutor(max_workers=8) as pool:
        assert list(pool.map(proc.process, inputs)) == expected
