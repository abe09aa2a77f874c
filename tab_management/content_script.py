"""
Tab-side listener injected into every page of the organizer's browser context.

The script answers messages delivered through ``window.__tabOrganizerReceive``
and talks back to Python through the binding named by BINDING_NAME, sending
one of three payload kinds:

    {"kind": "message", "message": {...}}   runtime message, the reply is returned
    {"kind": "command", "command": "..."}   keyboard shortcut
    {"kind": "activated"}                   the tab became visible/focused
"""

BINDING_NAME = "__tabOrganizerSend"

# Passed to page.evaluate with the message as its argument
DELIVER_EXPRESSION = """(message) => {
  const receive = window.__tabOrganizerReceive;
  if (typeof receive !== "function") {
    return { __noListener: true };
  }
  return receive(message);
}"""

CONTENT_SCRIPT = """
(() => {
  if (window.top !== window || window.__tabOrganizerReceive) {
    return;
  }

  const send = (payload) => {
    const binding = window.__tabOrganizerSend;
    if (typeof binding !== "function") {
      return Promise.resolve(null);
    }
    return binding(payload).catch(() => null);
  };

  const whenBodyReady = (fn) => {
    if (document.body) {
      fn();
    } else {
      document.addEventListener("DOMContentLoaded", fn, { once: true });
    }
  };

  const showFeedback = (text) => {
    whenBodyReady(() => {
      const toast = document.createElement("div");
      toast.textContent = text;
      toast.setAttribute("data-tab-organizer", "toast");
      toast.style.cssText = [
        "position:fixed", "bottom:24px", "right:24px", "z-index:2147483647",
        "padding:8px 14px", "border-radius:6px", "font:13px sans-serif",
        "background:#1f2430", "color:#f2f2f2", "box-shadow:0 2px 8px rgba(0,0,0,.3)",
      ].join(";");
      document.body.appendChild(toast);
      setTimeout(() => toast.remove(), 2000);
    });
  };

  const showSessionRestore = () => {
    send({ kind: "message", message: { type: "SESSION_LIST" } }).then((response) => {
      const sessions = (response && response.sessions) || [];
      if (!sessions.length) {
        return;
      }
      whenBodyReady(() => {
        document.querySelectorAll("[data-tab-organizer=restore]").forEach((el) => el.remove());
        const panel = document.createElement("div");
        panel.setAttribute("data-tab-organizer", "restore");
        panel.style.cssText = [
          "position:fixed", "top:24px", "right:24px", "z-index:2147483647",
          "padding:12px", "border-radius:8px", "font:13px sans-serif",
          "background:#1f2430", "color:#f2f2f2", "box-shadow:0 2px 12px rgba(0,0,0,.4)",
        ].join(";");
        const heading = document.createElement("div");
        heading.textContent = "Restore a session?";
        heading.style.marginBottom = "8px";
        panel.appendChild(heading);

        sessions.forEach((session) => {
          const button = document.createElement("button");
          button.textContent = `${session.name} (${session.entries.length})`;
          button.style.cssText = "display:block;width:100%;margin:4px 0;cursor:pointer";
          button.addEventListener("click", () => {
            panel.remove();
            send({ kind: "message", message: { type: "SESSION_LOAD", name: session.name } })
              .then((result) => {
                if (result && result.ok) {
                  const count = result.count || 0;
                  showFeedback(`Restored session "${session.name}" (${count} ${count === 1 ? "tab" : "tabs"})`);
                }
              });
          });
          panel.appendChild(button);
        });

        const dismiss = document.createElement("button");
        dismiss.textContent = "Dismiss";
        dismiss.style.cssText = "display:block;width:100%;margin-top:8px;cursor:pointer";
        dismiss.addEventListener("click", () => panel.remove());
        panel.appendChild(dismiss);
        document.body.appendChild(panel);
      });
    });
  };

  window.__tabOrganizerReceive = (message) => {
    switch (message && message.type) {
      case "GET_SCROLL":
        return { scrollX: window.scrollX, scrollY: window.scrollY };
      case "SET_SCROLL":
        window.scrollTo(message.scrollX, message.scrollY);
        return { ok: true };
      case "TAB_MANAGER_ADDED_FEEDBACK":
        showFeedback(message.alreadyAdded
          ? `Already in Tab Manager [${message.slot}]`
          : `Added to Tab Manager [${message.slot}]`);
        return { ok: true };
      case "TAB_MANAGER_FULL_FEEDBACK":
        showFeedback(`Tab Manager full (max ${message.max})`);
        return { ok: true };
      case "SHOW_SESSION_RESTORE":
        showSessionRestore();
        return { ok: true };
      default:
        return { ok: false, reason: "Unknown message" };
    }
  };

  const shortcuts = {
    "T": "tab-manager-add",
    "1": "tab-manager-tab-1",
    "2": "tab-manager-tab-2",
    "3": "tab-manager-tab-3",
    "4": "tab-manager-tab-4",
    "]": "tab-manager-next",
    "[": "tab-manager-prev",
    "M": "open-tab-manager",
    "F": "open-search-current",
  };
  window.addEventListener("keydown", (event) => {
    if (!event.altKey || !event.shiftKey) {
      return;
    }
    const key = event.key.length === 1 ? event.key.toUpperCase() : event.key;
    const command = shortcuts[key] || shortcuts[event.code.replace("Digit", "")];
    if (command) {
      event.preventDefault();
      send({ kind: "command", command });
    }
  }, true);

  const reportActivated = () => {
    if (document.visibilityState === "visible") {
      send({ kind: "activated" });
    }
  };
  document.addEventListener("visibilitychange", reportActivated);
  window.addEventListener("focus", reportActivated);

  // Announce readiness; a pending scroll restore comes back as the reply
  send({ kind: "message", message: { type: "CONTENT_SCRIPT_READY" } }).then((response) => {
    if (response && typeof response.scrollX === "number" && typeof response.scrollY === "number") {
      const apply = () => window.scrollTo(response.scrollX, response.scrollY);
      if (document.readyState === "complete") {
        apply();
      } else {
        window.addEventListener("load", apply, { once: true });
      }
    }
  });
})();
"""
