"""JavaScript generator for the in-page capture script.

The generated script observes DOM signals, snapshots the target element
and hands a signal object to a binding exposed by the capture agent. It
never performs network I/O itself; delivery is the agent's job.
"""

import json
from dataclasses import dataclass


@dataclass
class CaptureScriptConfig:
    """Configuration for the capture script."""

    binding_name: str = "__recordforgeEmit"
    active_flag: str = "__recordforgeActive"
    url_poll_interval_ms: int = 1000
    mask_passwords: bool = True
    max_text_length: int = 100
    ignore_selector: str = "[data-recordforge-ignore]"


class CaptureScriptGenerator:
    """Generates the init script installed into every page of a recording."""

    def __init__(self, config: CaptureScriptConfig | None = None):
        self.config = config or CaptureScriptConfig()

    def generate_init_script(self) -> str:
        """Generate the script passed to ``page.add_init_script``.

        The script is idempotent: a page-lifetime flag guards against double
        installation, and URL polling re-installs listeners if the flag was
        lost (for example after a framework replaced ``window`` state).
        """
        c = self.config
        binding = json.dumps(c.binding_name)
        flag = json.dumps(c.active_flag)
        ignore = json.dumps(c.ignore_selector)

        return f'''(function() {{
  var BINDING = {binding};
  var FLAG = {flag};
  var IGNORE = {ignore};
  var MAX_TEXT = {c.max_text_length};
  var MASK_PASSWORDS = {str(c.mask_passwords).lower()};

{self._element_snapshot_js()}

  function emit(type, target, extra) {{
    var fn = window[BINDING];
    if (typeof fn !== "function") return;
    var signal = Object.assign({{
      type: type,
      url: window.location.href,
      timestamp: Date.now(),
      element: target ? snapshot(target) : null
    }}, extra || {{}});
    // Fire and forget: never block the listener on delivery
    setTimeout(function() {{ try {{ fn(signal); }} catch (e) {{}} }}, 0);
  }}

  function ignored(el) {{
    return !el || !el.closest || el.closest(IGNORE) !== null;
  }}

  function install() {{
    if (window[FLAG]) return false;
    window[FLAG] = true;

    document.addEventListener("click", function(e) {{
      if (ignored(e.target)) return;
      emit("CLICK", e.target, {{
        ctrlKey: e.ctrlKey, shiftKey: e.shiftKey, altKey: e.altKey, metaKey: e.metaKey,
        middleClick: e.button === 1
      }});
    }}, true);

    document.addEventListener("dblclick", function(e) {{
      if (!ignored(e.target)) emit("DOUBLE_CLICK", e.target);
    }}, true);

    document.addEventListener("contextmenu", function(e) {{
      if (!ignored(e.target)) emit("RIGHT_CLICK", e.target);
    }}, true);

    document.addEventListener("change", function(e) {{
      var t = e.target;
      if (ignored(t)) return;
      var isPassword = t.type === "password";
      var extra = {{
        inputType: inputType(t),
        isPassword: isPassword,
        masked: isPassword && MASK_PASSWORDS,
        inputValue: isPassword && MASK_PASSWORDS ? "********" : valueOf(t)
      }};
      if (t.type === "file") {{
        extra.filePicker = true;
        extra.files = Array.prototype.map.call(t.files || [], function(f) {{ return f.name; }});
      }}
      emit("INPUT", t, extra);
    }}, true);

    document.addEventListener("submit", function(e) {{
      if (!ignored(e.target)) emit("FORM_SUBMIT", e.target);
    }}, true);

    return true;
  }}

  function inputType(t) {{
    var tag = (t.tagName || "").toLowerCase();
    if (tag === "select") return "SELECT";
    if (t.isContentEditable) return "CONTENTEDITABLE";
    var map = {{ checkbox: "CHECKBOX", radio: "RADIO", file: "FILE", date: "DATE", color: "COLOR", range: "RANGE" }};
    return map[t.type] || "TEXT";
  }}

  function valueOf(t) {{
    if (t.type === "checkbox" || t.type === "radio") return String(!!t.checked);
    if (t.isContentEditable) return t.textContent;
    return t.value;
  }}

  // SPA navigation: history API interception plus URL polling
  var lastUrl = window.location.href;
  function checkUrl(trigger) {{
    if (!window[FLAG]) install();
    var current = window.location.href;
    if (current === lastUrl) return;
    var previous = lastUrl;
    lastUrl = current;
    emit("NAVIGATION", null, {{
      sourceUrl: previous, targetUrl: current, trigger: trigger,
      metadata: {{ method: "spa_navigation" }}
    }});
  }}

  ["pushState", "replaceState"].forEach(function(name) {{
    var original = history[name];
    history[name] = function() {{
      var result = original.apply(this, arguments);
      checkUrl("HISTORY_API");
      return result;
    }};
  }});
  window.addEventListener("popstate", function() {{ checkUrl("BACK_BUTTON"); }});
  setInterval(function() {{ checkUrl("SCRIPT"); }}, {c.url_poll_interval_ms});

  if (document.readyState === "loading") {{
    document.addEventListener("DOMContentLoaded", install);
  }} else {{
    install();
  }}
}})();'''

    def _element_snapshot_js(self) -> str:
        return '''  function cssPath(el) {
    if (el.id) return "#" + CSS.escape(el.id);
    var parts = [];
    while (el && el.nodeType === 1 && parts.length < 5) {
      var part = el.tagName.toLowerCase();
      if (el.id) { parts.unshift("#" + CSS.escape(el.id)); break; }
      var parent = el.parentElement;
      if (parent) {
        var same = Array.prototype.filter.call(parent.children, function(c) { return c.tagName === el.tagName; });
        if (same.length > 1) part += ":nth-of-type(" + (same.indexOf(el) + 1) + ")";
      }
      parts.unshift(part);
      el = parent;
    }
    return parts.join(" > ");
  }

  function xPath(el) {
    if (el.id) return "//*[@id=\\"" + el.id + "\\"]";
    var parts = [];
    while (el && el.nodeType === 1) {
      var index = 1, sib = el.previousElementSibling;
      while (sib) { if (sib.tagName === el.tagName) index++; sib = sib.previousElementSibling; }
      parts.unshift(el.tagName.toLowerCase() + "[" + index + "]");
      el = el.parentElement;
    }
    return "/" + parts.join("/");
  }

  function snapshot(el) {
    var rect = el.getBoundingClientRect ? el.getBoundingClientRect() : null;
    var attrs = {};
    Array.prototype.forEach.call(el.attributes || [], function(a) { attrs[a.name] = a.value; });
    var text = (el.innerText || el.textContent || "").trim();
    var locators = [];
    if (el.id) locators.push({ strategy: "id", value: el.id });
    if (el.getAttribute && el.getAttribute("name")) locators.push({ strategy: "name", value: el.getAttribute("name") });
    locators.push({ strategy: "css", value: cssPath(el) });
    locators.push({ strategy: "xpath", value: xPath(el) });
    return {
      tagName: (el.tagName || "").toLowerCase(),
      id: el.id || null,
      className: typeof el.className === "string" ? el.className : null,
      name: el.getAttribute ? el.getAttribute("name") : null,
      text: text.length > MAX_TEXT ? text.slice(0, MAX_TEXT) : text,
      href: el.href || null,
      placeholder: el.placeholder || null,
      type: el.type || null,
      cssSelector: cssPath(el),
      xpath: xPath(el),
      attributes: attrs,
      rect: rect ? { x: rect.x, y: rect.y, width: rect.width, height: rect.height } : null,
      visible: !!(rect && rect.width && rect.height),
      enabled: !el.disabled,
      selected: !!(el.checked || el.selected),
      required: !!el.required,
      locators: locators
    };
  }'''
