import os
import tempfile

import pytest

# Keep the JSON event log out of the working tree while tests run.
os.environ.setdefault("READER_LOG_DIR", tempfile.mkdtemp(prefix="reader-logs-"))

from src.reader.storage import FeedStore  # noqa: E402


RSS_XML = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"
     xmlns:content="http://purl.org/rss/1.0/modules/content/"
     xmlns:dc="http://purl.org/dc/elements/1.1/"
     xmlns:media="http://search.yahoo.com/mrss/"
     xmlns:atom="http://www.w3.org/2005/Atom">
  <channel>
    <title>Example Blog</title>
    <link>https://ex.com/</link>
    <atom:link href="https://ex.com/feed" rel="self" type="application/rss+xml"/>
    <description>Posts about things</description>
    <image>
      <url>/logo.png</url>
      <title>Example Blog</title>
      <link>https://ex.com/</link>
    </image>
    <item>
      <title>First post</title>
      <link>https://ex.com/1</link>
      <description><![CDATA[<p>Hello <img src="/a.png"> world</p>]]></description>
      <author>ann@ex.com (Ann)</author>
      <pubDate>Mon, 01 Jan 2024 12:00:00 GMT</pubDate>
      <guid isPermaLink="false">post-1</guid>
    </item>
    <item>
      <title><![CDATA[Second & post]]></title>
      <link>https://ex.com/2</link>
      <description>Short summary</description>
      <content:encoded><![CDATA[<p>Full <b>content</b></p><img src="https://cdn.com/b.png">]]></content:encoded>
      <dc:creator>Bob</dc:creator>
      <pubDate>Tue, 02 Jan 2024 12:00:00 GMT</pubDate>
      <enclosure url="https://cdn.com/audio.mp3" type="audio/mpeg" length="1"/>
      <media:thumbnail url="/thumb.jpg"/>
    </item>
    <item>
      <link>https://ex.com/3</link>
      <enclosure url="/cover.jpg" type="image/jpeg" length="1"/>
    </item>
  </channel>
</rss>
"""


ATOM_XML = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title type="text">Example Blog</title>
  <subtitle>Posts about things</subtitle>
  <link rel="self" href="https://ex.com/atom.xml"/>
  <link rel="alternate" type="text/html" href="https://ex.com/"/>
  <icon>https://ex.com/logo.png</icon>
  <updated>2024-01-02T12:00:00Z</updated>
  <id>urn:example</id>
  <entry>
    <title>First post</title>
    <link href="https://ex.com/1"/>
    <id>urn:example:1</id>
    <updated>2024-01-01T12:00:00Z</updated>
    <published>2023-12-31T12:00:00Z</published>
    <author><name>Ann</name></author>
    <summary>Short</summary>
    <content type="html">&lt;p&gt;Hello &lt;img src="/a.png"&gt; world&lt;/p&gt;</content>
  </entry>
  <entry>
    <title type="html">Second post</title>
    <link rel="enclosure" href="https://ex.com/2.mp3"/>
    <link rel="alternate" href="https://ex.com/2"/>
    <id>urn:example:2</id>
    <published>2024-01-02T12:00:00Z</published>
    <summary>Only a summary</summary>
  </entry>
</feed>
"""


RDF_XML = """<?xml version="1.0" encoding="UTF-8"?>
<rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#"
         xmlns="http://purl.org/rss/1.0/"
         xmlns:dc="http://purl.org/dc/elements/1.1/">
  <channel rdf:about="https://ex.com/rdf">
    <title>Example Blog</title>
    <link>https://ex.com/</link>
    <description>Posts about things</description>
    <image rdf:resource="https://ex.com/logo.png"/>
    <items>
      <rdf:Seq>
        <rdf:li rdf:resource="https://ex.com/1"/>
      </rdf:Seq>
    </items>
  </channel>
  <image rdf:about="https://ex.com/logo.png">
    <title>Example Blog</title>
    <url>https://ex.com/logo.png</url>
    <link>https://ex.com/</link>
  </image>
  <item rdf:about="https://ex.com/1">
    <title>First post</title>
    <link>https://ex.com/1</link>
    <description>&lt;p&gt;Hello &lt;img src="/a.png"&gt; world&lt;/p&gt;</description>
    <dc:creator>Ann</dc:creator>
    <dc:date>2024-01-01T12:00:00Z</dc:date>
  </item>
</rdf:RDF>
"""


@pytest.fixture
def store(tmp_path):
    s = FeedStore(str(tmp_path / "reader.db"), batch_size=2)
    s.init()
    return s


@pytest.fixture
def rss_xml():
    return RSS_XML


@pytest.fixture
def atom_xml():
    return ATOM_XML


@pytest.fixture
def rdf_xml():
    return RDF_XML
