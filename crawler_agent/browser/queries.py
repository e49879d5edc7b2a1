"""页面查询：静态定义、按名称调用的页面脚本

每个脚本都是只接收一个参数的 JS 函数表达式。Playwright 直接
page.evaluate(script, arg)；Selenium 通过 wrap_for_webdriver 包一层后 execute_script。
"""

from enum import Enum


class PageQuery(str, Enum):
    """可在页面内执行的命名查询"""

    ELEMENT_EXISTS = "element_exists"
    SCROLL_INTO_VIEW = "scroll_into_view"
    FOCUS_ELEMENT = "focus_element"
    ELEMENT_CENTER = "element_center"
    EXTRACT_TEXTS = "extract_texts"
    EXTRACT_STRUCTURED = "extract_structured"
    DOM_TREE = "dom_tree"
    QUERY_ELEMENTS = "query_elements"
    QUERY_ELEMENTS_BY_TEXT = "query_elements_by_text"
    READY_STATE = "ready_state"
    PAGE_TITLE = "page_title"
    PAGE_URL = "page_url"
    VIEWPORT_SIZE = "viewport_size"

    @property
    def script(self) -> str:
        return _SCRIPTS[self]


# 元素描述：{tagName, text, rect: {left, top, width, height}}
_DESCRIBE = """
    const describe = (el) => {
        const rect = el.getBoundingClientRect();
        return {
            tagName: el.tagName.toLowerCase(),
            text: (el.textContent || '').trim(),
            rect: { left: rect.left, top: rect.top, width: rect.width, height: rect.height }
        };
    };
"""

_SCRIPTS = {
    PageQuery.ELEMENT_EXISTS: """
    (selector) => document.querySelector(selector) !== null
    """,

    PageQuery.SCROLL_INTO_VIEW: """
    (selector) => {
        const el = document.querySelector(selector);
        if (!el) return false;
        el.scrollIntoView({ block: 'center', inline: 'center' });
        return true;
    }
    """,

    PageQuery.FOCUS_ELEMENT: """
    (selector) => {
        const el = document.querySelector(selector);
        if (!el) return false;
        el.focus();
        return true;
    }
    """,

    PageQuery.ELEMENT_CENTER: """
    (selector) => {
        const el = document.querySelector(selector);
        if (!el) return null;
        const rect = el.getBoundingClientRect();
        return { x: rect.left + rect.width / 2, y: rect.top + rect.height / 2 };
    }
    """,

    PageQuery.EXTRACT_TEXTS: """
    (selector) => Array.from(document.querySelectorAll(selector))
        .map(el => (el.textContent || '').trim())
        .filter(Boolean)
    """,

    # 0 个匹配 -> null；1 个 -> 文本；多个 -> 文本数组
    PageQuery.EXTRACT_STRUCTURED: """
    (selectors) => {
        const result = {};
        for (const [key, selector] of Object.entries(selectors)) {
            const nodes = document.querySelectorAll(selector);
            if (nodes.length === 0) {
                result[key] = null;
            } else if (nodes.length === 1) {
                result[key] = (nodes[0].textContent || '').trim() || null;
            } else {
                result[key] = Array.from(nodes)
                    .map(el => (el.textContent || '').trim())
                    .filter(Boolean);
            }
        }
        return result;
    }
    """,

    PageQuery.DOM_TREE: """
    (maxDepth) => {
        const walk = (el, depth) => {
            if (depth > maxDepth) return null;
            const children = Array.from(el.children)
                .map(child => walk(child, depth + 1))
                .filter(Boolean);
            const node = { tag: el.tagName.toLowerCase() };
            if (el.id) node.id = el.id;
            if (typeof el.className === 'string' && el.className) node.className = el.className;
            const text = (el.textContent || '').trim().substring(0, 100);
            if (text) node.text = text;
            if (children.length > 0) node.children = children;
            return node;
        };
        return document.body ? walk(document.body, 0) : null;
    }
    """,

    PageQuery.QUERY_ELEMENTS: """
    (selector) => {
    """ + _DESCRIBE + """
        return Array.from(document.querySelectorAll(selector)).map(describe);
    }
    """,

    # 文本包含匹配，只保留最深层的元素（子元素里不再包含该文本）
    PageQuery.QUERY_ELEMENTS_BY_TEXT: """
    (needle) => {
    """ + _DESCRIBE + """
        if (!document.body || !needle) return [];
        const target = needle.trim().toLowerCase();
        const contains = (el) => (el.textContent || '').toLowerCase().includes(target);
        return Array.from(document.body.querySelectorAll('*'))
            .filter(el => !['SCRIPT', 'STYLE', 'NOSCRIPT'].includes(el.tagName))
            .filter(contains)
            .filter(el => !Array.from(el.children).some(contains))
            .map(describe);
    }
    """,

    PageQuery.READY_STATE: """
    () => document.readyState
    """,

    PageQuery.PAGE_TITLE: """
    () => document.title
    """,

    PageQuery.PAGE_URL: """
    () => window.location.href
    """,

    PageQuery.VIEWPORT_SIZE: """
    () => ({
        width: document.documentElement.clientWidth,
        height: document.documentElement.clientHeight
    })
    """,
}


def wrap_for_webdriver(query: PageQuery) -> str:
    """WebDriver 的 execute_script 需要函数体，参数走 arguments[0]"""
    return f"return ({query.script.strip()})(arguments[0]);"
