"""
On-page notifications drawn into the recorded page.

The injector belongs to one browser session. Styles are added to the page's
document on first use and re-added automatically after a navigation, since
the guard lives in the document itself.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional

from playwright.sync_api import Page

logger = logging.getLogger(__name__)

OVERLAY_SELECTOR = ".playflow-overlay"

OVERLAY_CSS = """
@keyframes playflow-slide-in {
  from { transform: translateY(-20px) scale(0.95); opacity: 0; }
  to { transform: translateY(0) scale(1); opacity: 1; }
}
@keyframes playflow-fade-in { from { opacity: 0; } to { opacity: 1; } }

.playflow-backdrop {
  position: fixed; inset: 0;
  background: rgba(0, 0, 0, 0.8);
  backdrop-filter: blur(4px);
  z-index: 999998;
  animation: playflow-fade-in 0.3s ease-out;
}
.playflow-overlay {
  all: initial;
  position: fixed !important;
  z-index: 999999 !important;
  font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif !important;
  pointer-events: auto !important;
  animation: playflow-slide-in 0.3s ease-out !important;
}
.playflow-top-left { top: 20px !important; left: 20px !important; }
.playflow-top-center { top: 20px !important; left: 50% !important; transform: translateX(-50%) !important; }
.playflow-top-right { top: 20px !important; right: 20px !important; }
.playflow-bottom-left { bottom: 20px !important; left: 20px !important; }
.playflow-bottom-center { bottom: 20px !important; left: 50% !important; transform: translateX(-50%) !important; }
.playflow-bottom-right { bottom: 20px !important; right: 20px !important; }
.playflow-center { top: 50% !important; left: 50% !important; transform: translate(-50%, -50%) !important; }

.playflow-message {
  all: initial;
  display: block !important;
  position: relative !important;
  box-sizing: border-box !important;
  max-width: 450px !important;
  padding: 12px 16px !important;
  border-radius: 8px !important;
  background: rgba(26, 26, 26, 0.95) !important;
  color: white !important;
  box-shadow: 0 4px 16px rgba(0, 0, 0, 0.3) !important;
  font-family: inherit !important;
}
.playflow-message::before {
  content: 'PlayFlow';
  position: absolute; top: -8px; left: 0;
  padding: 4px 12px; border-radius: 16px;
  font-size: 12px; font-weight: bold; color: white;
  background: #3b82f6;
}
.playflow-info::before { background: #3b82f6; }
.playflow-warning::before { background: #f59e0b; }
.playflow-error::before { background: #ef4444; }
.playflow-success::before { background: #10b981; }

.playflow-message h3 {
  all: initial; display: block !important;
  margin: 16px 0 8px 0 !important;
  font-size: 16px !important; font-weight: 600 !important; color: #ffffff !important;
  font-family: inherit !important;
}
.playflow-message p {
  all: initial; display: block !important;
  margin: 16px 0 0 0 !important;
  font-size: 14px !important; font-weight: 500 !important; line-height: 1.5 !important;
  white-space: pre-wrap !important; color: #ffffff !important;
  font-family: inherit !important;
}
.playflow-close {
  all: initial;
  position: absolute !important; top: 16px !important; right: 0 !important;
  width: 24px !important; height: 24px !important;
  display: flex !important; align-items: center !important; justify-content: center !important;
  border-radius: 50% !important; cursor: pointer !important;
  background: rgba(0, 0, 0, 0.6) !important; color: #ffffff !important; font-size: 18px !important;
}
.playflow-progress {
  margin-top: 15px; height: 4px; overflow: hidden;
  border-radius: 2px; background: #e5e7eb;
}
.playflow-progress-bar {
  height: 100%; width: 0%;
  border-radius: 2px; background: #3b82f6;
  transition: width 0.3s ease;
}
"""

_INJECT_STYLES_JS = """
(css) => {
  if (document.getElementById('playflow-styles')) return false;
  const style = document.createElement('style');
  style.id = 'playflow-styles';
  style.textContent = css;
  (document.head || document.documentElement).appendChild(style);
  return true;
}
"""

_SHOW_MESSAGE_JS = """
(opts) => {
  const removeAll = () => document
    .querySelectorAll('.playflow-overlay, .playflow-backdrop')
    .forEach((el) => el.remove());
  removeAll();

  if (opts.backdrop) {
    const backdrop = document.createElement('div');
    backdrop.className = 'playflow-backdrop';
    document.body.appendChild(backdrop);
  }

  const overlay = document.createElement('div');
  overlay.className = `playflow-overlay playflow-${opts.position}`;
  const box = document.createElement('div');
  box.className = `playflow-message playflow-${opts.style}`;

  if (opts.closeButton) {
    const close = document.createElement('button');
    close.className = 'playflow-close';
    close.textContent = '\\u00d7';
    close.addEventListener('click', removeAll);
    box.appendChild(close);
  }
  if (opts.title) {
    const title = document.createElement('h3');
    title.textContent = opts.title;
    box.appendChild(title);
  }
  const text = document.createElement('p');
  text.textContent = opts.message;
  box.appendChild(text);
  if (opts.progress) {
    const track = document.createElement('div');
    track.className = 'playflow-progress';
    const bar = document.createElement('div');
    bar.className = 'playflow-progress-bar';
    track.appendChild(bar);
    box.appendChild(track);
  }

  overlay.appendChild(box);
  document.body.appendChild(overlay);

  if (opts.duration > 0) {
    setTimeout(removeAll, opts.duration);
  }
}
"""

_UPDATE_PROGRESS_JS = """
(pct) => {
  const bar = document.querySelector('.playflow-progress-bar');
  if (bar) bar.style.width = `${pct}%`;
}
"""

_REMOVE_OVERLAY_JS = """
() => document
  .querySelectorAll('.playflow-overlay, .playflow-backdrop')
  .forEach((el) => el.remove())
"""

_OVERLAY_GONE_JS = "() => !document.querySelector('.playflow-overlay')"


@dataclass(frozen=True)
class MessageOptions:
    message: str
    title: Optional[str] = None
    position: str = "top-left"
    duration: float = 5000
    style: str = "info"
    close_button: bool = True
    backdrop: bool = False
    progress: bool = False


class OverlayInjector:
    """Draws and removes PlayFlow notifications on one page."""

    def __init__(self, page: Page):
        self.page = page

    def ensure_styles(self) -> bool:
        """Add the stylesheet unless this document already has it."""
        return bool(self.page.evaluate(_INJECT_STYLES_JS, OVERLAY_CSS))

    def show_message(self, options: MessageOptions) -> None:
        self.ensure_styles()
        self.page.evaluate(_SHOW_MESSAGE_JS, {
            "message": options.message,
            "title": options.title,
            "position": options.position,
            "duration": options.duration,
            "style": options.style,
            "closeButton": options.close_button,
            "backdrop": options.backdrop,
            "progress": options.progress,
        })

    def show_overlay(self, options: MessageOptions) -> None:
        """Blocking overlay: no close button, never auto-dismissed."""
        self.show_message(replace(options, close_button=False, duration=0))

    def update_progress(self, percent: float) -> None:
        self.page.evaluate(_UPDATE_PROGRESS_JS, max(0.0, min(100.0, percent)))

    def remove_overlay(self) -> None:
        self.page.evaluate(_REMOVE_OVERLAY_JS)

    def wait_until_closed(self, timeout_ms: float) -> None:
        self.page.wait_for_function(_OVERLAY_GONE_JS, timeout=timeout_ms)
