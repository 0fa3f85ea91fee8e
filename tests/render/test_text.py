from chat_archive.render.text import escape_html, format_reaction, format_slack_text, normalize_newlines


def _resolver(user_id):
    return {"U1": "Jane"}.get(user_id)


def test_plain_text_is_escaped():
    assert format_slack_text('a < b & "c"', _resolver) == "a &lt; b &amp; &quot;c&quot;"


def test_blank_text_is_empty():
    assert format_slack_text(None, _resolver) == ""
    assert format_slack_text("   ", _resolver) == ""


def test_user_mentions_use_label_then_resolver_then_id():
    assert format_slack_text("hi <@U1>", _resolver) == "hi @Jane"
    assert format_slack_text("hi <@U2|bob>", _resolver) == "hi @bob"
    assert format_slack_text("hi <@U3>", _resolver) == "hi @U3"


def test_channel_and_special_mentions():
    assert format_slack_text("see <#C1|general>", _resolver) == "see #general"
    assert format_slack_text("see <#C1>", _resolver) == "see #C1"
    assert format_slack_text("<!here> ping", _resolver) == "@here ping"


def test_links_with_supported_schemes_become_anchors():
    text = format_slack_text("go <https://example.com/?a=1&b=2|the docs>", _resolver)
    assert text == 'go <a class="archive-link" href="https://example.com/?a=1&amp;b=2">the docs</a>'
    assert format_slack_text("<mailto:a@b.c>", _resolver) == '<a class="archive-link" href="mailto:a@b.c">mailto:a@b.c</a>'


def test_unsupported_scheme_renders_label_only():
    assert format_slack_text("<javascript:alert(1)|click>", _resolver) == "click"


def test_known_emoji_replaced_unknown_kept():
    assert format_slack_text(":wave: and :party_parrot:", _resolver) == "\U0001F44B and :party_parrot:"


def test_format_reaction():
    assert format_reaction("thumbsup", 3) == "\U0001F44D 3"
    assert format_reaction("party_parrot", 2) == ":party_parrot: 2"


def test_escape_and_newlines():
    assert escape_html("it's") == "it&#x27;s"
    assert escape_html(None) == ""
    assert normalize_newlines("a\r\nb\rc") == "a\nb\nc"


def test_emoji_codes_inside_links_are_left_alone():
    text = format_slack_text("<https://example.com/:fire:/x|docs> :fire:", _resolver)
    assert text == '<a class="archive-link" href="https://example.com/:fire:/x">docs</a> \U0001F525'


def test_emoji_after_escaping_is_still_replaced():
    assert format_slack_text("a & b :tada:", _resolver) == "a &amp; b \U0001F389"
