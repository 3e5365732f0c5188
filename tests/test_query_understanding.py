from transcript_qa.query_understanding import (
    extract_time_range,
    infer_intent,
    parse_chinese_int,
    resolve_model_range,
    resolve_relative_time_range,
    should_prefer_chinese,
    understand_query_with_llm,
    understand_transcript_query,
)


def test_absolute_range_from_clock_strings():
    tr = extract_time_range("what happened from 8:30 to 9:05")
    assert (tr.start_seconds, tr.end_seconds) == (510, 545)


def test_absolute_range_from_chinese_minutes_and_seconds():
    tr = extract_time_range("视频8分30秒到9分05秒讲了啥")
    assert (tr.start_seconds, tr.end_seconds) == (510, 545)
    tr = extract_time_range("视频 05:20 到 06:40 讲了什么")
    assert (tr.start_seconds, tr.end_seconds) == (320, 400)
    tr = extract_time_range("3分半到5分10秒")
    assert (tr.start_seconds, tr.end_seconds) == (210, 310)


def test_absolute_range_needs_cue_two_mentions_and_sane_span():
    assert extract_time_range("at 8:30 and 9:05") is None
    assert extract_time_range("what happens at 8:30") is None
    assert extract_time_range("from 0:00:00 to 2:00:00") is None


def test_relative_ranges():
    tr = resolve_relative_time_range("what does the first third cover", 90)
    assert (tr.start_seconds, tr.end_seconds) == (0, 30)
    tr = resolve_relative_time_range("后面1/2讲了啥", 40)
    assert (tr.start_seconds, tr.end_seconds) == (20, 40)
    tr = resolve_relative_time_range("前三分之一讲了什么", 90)
    assert (tr.start_seconds, tr.end_seconds) == (0, 30)
    tr = resolve_relative_time_range("summarize the last 1/4", 100)
    assert (tr.start_seconds, tr.end_seconds) == (75, 100)
    assert resolve_relative_time_range("first third", 0) is None
    assert resolve_relative_time_range("tell me everything", 90) is None


def test_parse_chinese_int():
    assert parse_chinese_int("七") == 7
    assert parse_chinese_int("十") == 10
    assert parse_chinese_int("十五") == 15
    assert parse_chinese_int("三十") == 30
    assert parse_chinese_int("二十三") == 23
    assert parse_chinese_int("12") == 12
    assert parse_chinese_int("百") is None


def test_infer_intent():
    assert infer_intent("anything", True) == "time_range"
    assert infer_intent("请给我一个更详细的总结", False) == "summary"
    assert infer_intent("介绍这个视频的重点内容", False) == "summary"
    assert infer_intent("compare pip vs poetry", False) == "compare"
    assert infer_intent("这个视频里讲了摩斯密码和二进制吗？", False) == "yes_no"
    assert infer_intent("does this mention Morse code and binary?", False) == "yes_no"
    assert infer_intent("what is the tool called", False) == "factoid"
    assert infer_intent("Morse code", False) == "unknown"


def test_reply_language():
    assert should_prefer_chinese("总结一下", "latin") is True
    assert should_prefer_chinese("summarize", "cjk") is True
    assert should_prefer_chinese("summarize", "latin") is False
    assert should_prefer_chinese("用english回答这个视频", "latin") is False


def test_deterministic_understanding_fields():
    u = understand_transcript_query("  How do I configure the API key?  ", "latin")
    assert u.raw_query == "  How do I configure the API key?  "
    assert u.normalized_query == "How do I configure the API key?"
    assert u.intent == "yes_no"
    assert u.script == "latin"
    assert "configure" in u.keywords and "api" in u.keywords
    assert u.time_range is None
    assert u.prefer_chinese is False


def test_text_range_skips_the_model(fake_llm):
    llm = fake_llm('{"intent":"summary","range":{"type":"none"}}')
    u = understand_query_with_llm(llm, "what does the first third cover", "latin", 90)
    assert llm.calls == []
    assert u.intent == "time_range"
    assert (u.time_range.start_seconds, u.time_range.end_seconds) == (0, 30)


def test_relative_range_keeps_summary_intent():
    u = understand_query_with_llm(None, "视频前1/3重点讲了什么内容", "cjk", 90)
    assert u.intent == "summary"
    assert u.time_range.end_seconds == 30


def test_model_relative_range(fake_llm):
    llm = fake_llm(
        '{"intent":"time_range","range":{"type":"relative","anchor":"tail","numerator":1,"denominator":2},"language":"zh"}'
    )
    u = understand_query_with_llm(llm, "最后一半讲了啥", "latin", 40)
    assert len(llm.calls) == 1
    assert llm.calls[0][0]["role"] == "system"
    assert "You classify user intent for transcript QA" in llm.calls[0][0]["content"]
    assert u.intent == "time_range"
    assert (u.time_range.start_seconds, u.time_range.end_seconds) == (20, 40)
    assert u.prefer_chinese is True


def test_model_absolute_clock_strings(fake_llm):
    llm = fake_llm(
        'Sure! {"intent":"factoid","range":{"type":"absolute","startSeconds":"01:00","endSeconds":"01:30"},"language":"en"}'
    )
    u = understand_query_with_llm(llm, "what happens around the setup part", "cjk", 600)
    assert u.intent == "time_range"
    assert (u.time_range.start_seconds, u.time_range.end_seconds) == (60, 90)
    assert u.prefer_chinese is False


def test_model_summary_intent_keeps_range_without_forcing_time_range(fake_llm):
    llm = fake_llm('{"intent":"summary","range":{"type":"relative","anchor":"head","numerator":1,"denominator":3}}')
    u = understand_query_with_llm(llm, "key points of the opening", "latin", 90)
    assert u.intent == "summary"
    assert u.time_range.end_seconds == 30


def test_malformed_model_output_degrades(fake_llm):
    llm = fake_llm("I think the user wants a summary")
    u = understand_query_with_llm(llm, "Morse code", "latin", 90)
    assert u.intent == "summary"
    assert u.time_range is None

    u = understand_query_with_llm(fake_llm('{"intent":"dance","range":"soon"}'), "is pip used?", "latin", 90)
    assert u.intent == "yes_no"
    assert u.time_range is None


def test_missing_or_failing_model_degrades():
    class Broken:
        def stream_chat(self, messages):
            raise ConnectionError("model offline")

    assert understand_query_with_llm(None, "Morse code", "latin", 90).intent == "summary"
    u = understand_query_with_llm(Broken(), "what is pip", "latin", 90)
    assert u.intent == "factoid"
    assert u.time_range is None


def test_resolve_model_range_rejects_bad_shapes():
    assert resolve_model_range(None, 90) is None
    assert resolve_model_range({"type": "none"}, 90) is None
    assert resolve_model_range({"type": "absolute", "startSeconds": 50, "endSeconds": 10}, 90) is None
    assert resolve_model_range({"type": "absolute", "startSeconds": "soon", "endSeconds": 10}, 90) is None
    assert resolve_model_range({"type": "relative", "numerator": 0, "denominator": 2}, 90) is None
    assert resolve_model_range({"type": "relative", "numerator": 1, "denominator": 2}, 0) is None
    tr = resolve_model_range({"type": "absolute", "startSeconds": 10.4, "endSeconds": 20.2}, 90)
    assert (tr.start_seconds, tr.end_seconds) == (10, 21)
