from awesomelint.markdown_events import Event, EventKind, TagKind, iter_events


def test_heading_events():
    assert list(iter_events("## Resources\n")) == [
        Event(EventKind.START, TagKind.HEADING, level=2),
        Event(EventKind.TEXT, text="Resources"),
        Event(EventKind.END, TagKind.HEADING, level=2),
    ]


def test_tight_list_item_has_no_paragraph():
    events = list(iter_events("* [abc](https://example.com/abc) - A thing\n"))
    assert events == [
        Event(EventKind.START, TagKind.LIST),
        Event(EventKind.START, TagKind.ITEM),
        Event(EventKind.START, TagKind.LINK, url="https://example.com/abc"),
        Event(EventKind.TEXT, text="abc"),
        Event(EventKind.END, TagKind.LINK),
        Event(EventKind.TEXT, text=" - A thing"),
        Event(EventKind.END, TagKind.ITEM),
        Event(EventKind.END, TagKind.LIST),
    ]


def test_loose_list_items_have_paragraphs():
    events = list(iter_events("* one\n\n* two\n"))
    paragraphs = [e for e in events if e.tag is TagKind.PARAGRAPH]
    assert len(paragraphs) == 4


def test_starts_and_ends_balance():
    text = "# Title\n\n> quote *em* **strong**\n\n1. a\n2. b\n   * nested [x](https://example.com)\n"
    events = list(iter_events(text))
    open_tags = []
    mismatches = []
    underflows = 0
    for event in events:
        if event.kind is EventKind.START:
            open_tags.append(event.tag)
        elif event.kind is EventKind.END:
            if not open_tags:
                underflows += 1
            elif open_tags.pop() is not event.tag:
                mismatches.append(event.tag)
    assert underflows == 0
    assert mismatches == []
    assert open_tags == []
    started = {e.tag for e in events if e.kind is EventKind.START}
    assert {TagKind.HEADING, TagKind.LIST, TagKind.ITEM, TagKind.LINK, TagKind.PARAGRAPH} <= started


def test_link_destination_kept_as_written():
    events = list(iter_events("[x](https://example.com/ä)\n"))
    links = [e for e in events if e.kind is EventKind.START and e.tag is TagKind.LINK]
    assert [e.url for e in links] == ["https://example.com/ä"]


def test_image_events():
    events = list(iter_events("![alt](https://example.com/a.svg)\n"))
    assert events[1:4] == [
        Event(EventKind.START, TagKind.IMAGE, url="https://example.com/a.svg"),
        Event(EventKind.TEXT, text="alt"),
        Event(EventKind.END, TagKind.IMAGE),
    ]


def test_html_block():
    events = list(iter_events("<!-- toc -->\n"))
    assert len(events) == 1
    assert events[0].kind is EventKind.HTML
    assert "<!-- toc" in events[0].text


def test_inline_html_is_html_event():
    events = list(iter_events("a <b>bold</b>\n"))
    html = [e.text for e in events if e.kind is EventKind.HTML]
    assert html == ["<b>", "</b>"]


def test_inline_code_is_not_text():
    events = list(iter_events("use `cargo` now\n"))
    assert Event(EventKind.CODE, text="cargo") in events
    texts = "".join(e.text for e in events if e.kind is EventKind.TEXT)
    assert "cargo" not in texts


def test_code_block_content():
    events = list(iter_events("```\ncode\n```\n"))
    assert events == [
        Event(EventKind.START, TagKind.CODE_BLOCK),
        Event(EventKind.TEXT, text="code\n"),
        Event(EventKind.END, TagKind.CODE_BLOCK),
    ]


def test_fragment_link():
    events = list(iter_events("[top](#top)\n"))
    urls = [e.url for e in events if e.tag is TagKind.LINK and e.kind is EventKind.START]
    assert urls == ["#top"]