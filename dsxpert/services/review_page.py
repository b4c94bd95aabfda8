"""
Review Page - HTML surface shown to the reviewer for one review cycle
"""

from __future__ import annotations

import json
from html import escape

from dsxpert.services.review_session import ReviewCycle

PAGE_STYLES = """
body { font-family: sans-serif; margin: 1rem; }
.tabs { display: flex; gap: .25rem; margin-bottom: .5rem; }
.tab-button { padding: .35rem .8rem; border: 1px solid #888; background: #eee; cursor: pointer; }
.tab-button.active { background: #fff; font-weight: bold; }
.tab-content { display: none; }
.tab-content.active { display: block; }
pre, textarea { font-family: monospace; font-size: 13px; white-space: pre; }
textarea { width: 100%; min-height: 20rem; }
.hl-added { background: #e6ffec; display: block; }
.hl-removed { background: #ffebe9; text-decoration: line-through; display: block; }
.hl-unchanged { display: block; }
.actions { margin-top: 1rem; display: flex; gap: .5rem; }
.accept { background: #2da44e; color: #fff; }
.reject { background: #cf222e; color: #fff; }
"""

# Tab switching plus the two messages the surface can send
PAGE_SCRIPT = """
const reviewUrl = %(review_url)s;
document.querySelectorAll(".tab-button").forEach((button) => {
    button.addEventListener("click", () => {
        document.querySelectorAll(".tab-content, .tab-button").forEach((el) => el.classList.remove("active"));
        document.getElementById(button.dataset.tab).classList.add("active");
        button.classList.add("active");
    });
});
async function send(message) {
    document.querySelectorAll(".actions button").forEach((b) => (b.disabled = true));
    const response = await fetch(reviewUrl + "/message", {
        method: "POST",
        headers: {"Content-Type": "application/json"},
        body: JSON.stringify(message),
    });
    document.getElementById("status").textContent = response.ok ? "Sent: " + message.command : "Review already closed";
}
function accept() {
    send({command: "accept", code: document.getElementById("optimized-code").value});
}
function reject() {
    send({command: "reject"});
}
"""


def render_review_page(cycle: ReviewCycle, review_url: str) -> str:
    """Build the full review document; all code and explanation text is escaped"""
    diff_html = cycle.render()
    script = PAGE_SCRIPT % {"review_url": json.dumps(review_url)}

    if cycle.is_changed:
        actions = (
            '<button class="accept" onclick="accept()">Accept</button>\n'
            '<button class="reject" onclick="reject()">Reject</button>'
        )
    else:
        actions = '<button class="reject" onclick="reject()">Close</button>'

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Optimization Result</title>
    <style>{PAGE_STYLES}</style>
</head>
<body>
    <div class="tabs">
        <button class="tab-button active" data-tab="changes">Changes</button>
        <button class="tab-button" data-tab="original">Original Code</button>
        <button class="tab-button" data-tab="optimized">Optimized Code</button>
    </div>
    <div id="changes" class="tab-content active">
        <pre><code class="language-{escape(cycle.language)}">{diff_html}</code></pre>
    </div>
    <div id="original" class="tab-content">
        <pre><code class="language-{escape(cycle.language)}">{escape(cycle.original)}</code></pre>
    </div>
    <div id="optimized" class="tab-content">
        <textarea id="optimized-code" spellcheck="false">\n{escape(cycle.modified)}</textarea>
    </div>
    <h2>Optimizations Made</h2>
    <div class="explanation"><pre>{escape(cycle.explanation)}</pre></div>
    <div class="actions">
        {actions}
    </div>
    <p id="status"></p>
    <script>{script}</script>
</body>
</html>
"""
