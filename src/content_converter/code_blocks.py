"""Code block conversion and lexer name translation.

Redmine renders code blocks as ``<pre><code class="lang">`` with optional
highlight spans. The target wiki highlights code through
``<syntaxhighlight lang="...">``, whose lexer names partly differ from
Redmine's. Lexers the target cannot highlight fall back to ``text``.
"""

import logging
import re

from .markup_fixes import replace_encoded_entities

logger = logging.getLogger(__name__)

# Redmine lexer name -> syntaxhighlight lexer name
MAPPABLE_LANGUAGE = {
    'as': 'actionscript',
    'as3': 'actionscript3',
    'aug': 'augeas',
    'batchfile': 'bat',
    'terminal': 'console',
    'shell_session': 'shell-session',
    'dlang': 'd',
    'patch': 'diff',
    'containerfile': 'dockerfile',
    'Containerfile': 'Dockerfile',
    'e-mail': 'email',
    'eruby': 'erb',
    'ff': 'freefem',
    'behat': 'gherkin',
    'nextflow': 'groovy',
    'nf': 'groovy',
    'HAML': 'haml',
    'hbs': 'handlebars',
    'mustache': 'handlebars',
    'pry': 'irb',
    'isa': 'isabelle',
    'Isabelle': 'isabelle',
    'literate_haskell': 'literate-haskell',
    'lithaskell': 'literate-haskell',
    'ls': 'livescript',
    'gnumake': 'make',
    'mkd': 'markdown',
    'wl': 'mathematica',
    'wolfram': 'mathematica',
    'm': 'matlab',
    'objective_c': 'objective-c',
    'obj_c': 'obj-c',
    'objective_cpp': 'objective-c++',
    'objcpp': 'objc++',
    'obj-cpp': 'objc++',
    'obj_cpp': 'objc++',
    'objectivecpp': 'objective-c++',
    'obj-c++': 'objc++',
    'obj_c++': 'objc++',
    'objectivec++': 'objective-c++',
    'plaintext': 'text',
    'plist': 'text',
    'ps': 'postscript',
    'eps': 'postscript',
    'microsoftshell': 'powershell',
    'msshell': 'powershell',
    'pp': 'puppet',
    'robot_framework': 'robotframework',
    'robot': 'robotframework',
    'robot-framework': 'robotframework',
    'ml': 'sml',
    'TeX': 'tex',
    'LaTeX': 'latex',
    'visualbasic': 'vb',
    'varnishconf': 'vcl',
    'varnish': 'vcl',
    'viml': 'vim',
    'vimscript': 'vim',
    'zir': 'zig',
}

# Redmine lexers without a syntaxhighlight equivalent
UNSUPPORTED_LANGUAGE = frozenset([
    'apex', 'apiblueprint', 'apib', 'armasm', 'biml', 'bpf', 'brightscript',
    'bs', 'brs', 'bsl', 'cfscript', 'cisco_ios', 'cmhg', 'codeowners', 'conf',
    'config', 'configuration', 'csvs', 'dafny', 'datastudio', 'digdag', 'elm',
    'eex', 'leex', 'heex', 'epp', 'escape', 'esc', 'fluent', 'ftl', 'ghc-cmm',
    'cmm', 'ghc-core', 'gradle', 'graphql', 'hack', 'hh', 'hcl', 'hocon', 'hql',
    'idlang', 'iecst', 'isbl', 'janet', 'jdn', 'jsl', 'json-doc', 'jsonc',
    'json5', 'jsonnet', 'jsx', 'react', 'literate_coffeescript', 'litcoffee',
    'lustre', 'lutin', 'm68k', 'magik', 'minizinc', 'mojo', 'msgtrans',
    'nesasm', 'nes', 'nial', 'ocl', 'OCL', 'opentype_feature_file', 'fea',
    'opentype', 'opentypefeature', 'p4', 'plsql', 'prometheus', 'q', 'kdb+',
    'rego', 'rescript', 'rml', 'slice', 'sqf', 'ssh', 'svelte', 'systemd',
    'unit-file', 'syzlang', 'syzprog', 'tsx', 'ttcn3', 'tulip', 'vue', 'vuejs',
    'wollok', 'xojo', 'realbasic', 'xpath',
])

_WHITESPACE = re.compile(r'\s')
_HIGHLIGHT_SPAN = re.compile(r'<span\s+class="[a-z0-9]+">(.*?)</span>', re.IGNORECASE | re.DOTALL)
_CODE_WITH_CLASS = re.compile(r'<code\s+class="([^"]+)">')
_CLOSING_CODE_AT_END = re.compile(r'</code>\s*$')
_BREAK = re.compile(r'<br\s*/?>', re.IGNORECASE)


def convert_lexer_name(language: str) -> str:
    """Translate a Redmine lexer name into a syntaxhighlight lexer name.

    Whitespace and the ``language-`` and ``syntaxhl`` markers of the HTML
    class attribute are removed first. Unknown names pass through.
    """
    language = _WHITESPACE.sub('', language)
    language = language.replace('language-', '').replace('syntaxhl', '')
    if language in MAPPABLE_LANGUAGE:
        return MAPPABLE_LANGUAGE[language]
    if language in UNSUPPORTED_LANGUAGE:
        logger.debug(f"Lexer '{language}' has no highlighting support, using text")
        return 'text'
    return language


def convert_code_block(body: str) -> str:
    """Turn the body of a Redmine ``<pre>`` block into wikitext.

    Args:
        body: Inner HTML of the ``<pre>`` element

    Returns:
        A ``<syntaxhighlight>`` block when the code carries a language
        class, otherwise a ``<pre>`` block
    """
    content = replace_encoded_entities(body)
    previous = None
    while previous != content:
        previous = content
        content = _HIGHLIGHT_SPAN.sub(r'\1', content)

    match = _CODE_WITH_CLASS.search(content)
    if match:
        language = convert_lexer_name(match.group(1))
        content = _CODE_WITH_CLASS.sub('', content)
        content = _CLOSING_CODE_AT_END.sub('', content)
        content = f'<syntaxhighlight lang="{language}">\n{content}\n</syntaxhighlight>'
    else:
        content = content.replace('<code>', '').replace('</code>', '')
        content = f'<pre>{content}</pre>'

    content = replace_encoded_entities(content)
    return _BREAK.sub('\n', content)
