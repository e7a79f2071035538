from __future__ import annotations

from starlette.responses import Response

STYLESHEET = """\
* {
    font-family: Monaco, ProFont, "Bitstream Vera Sans Mono", "American Typewriter", "Andale Mono", monospace;
}
h1 {
    font-size: 1.4em;
}
p, td {
    font-size: 0.9em;
}
a:link, a:visited {
    color: blue;
    text-decoration: none;
}
a:hover, a:active {
    color: blue;
    text-decoration: underline;
}
.directory {
    font-weight: bold;
}
tr {
    text-align: left;
}
th {
    font-size: 0.9em;
    border-bottom: 1px solid #E0E0E0;
}
td {
    padding-right: 8px;
}
"""


def stylesheet_response() -> Response:
    return Response(STYLESHEET, media_type='text/css')
