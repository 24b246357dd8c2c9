"""YAML customization loading and validation.

This module handles the optional customization file that tunes a migration:
projects to skip, titles to rewrite, categories to add, literal replacements
and the Redmine domain used to recognise internal URLs.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import yaml

from .errors import ConfigError


@dataclass
class Customizations:
    """Migration customizations.

    Attributes:
        unwanted_projects: Project ids whose wikis are not migrated
        categories_to_add: Formatted title -> categories to add
        pages_to_modify: Formatted title -> new formatted title, or False to drop the page
        current_revision_only: Migrate only the latest version of every page
        redmine_domain: Host (and optional path) of the Redmine instance
        customized_replace: Literal replacements applied before conversion
        title_cheatsheet: Raw title -> formatted title used when lookup fails
        fallback_author: Author name for synthetic or unresolved revisions
        knowledge_stories: Story id -> formatted title
    """
    unwanted_projects: List[int] = field(default_factory=list)
    categories_to_add: Dict[str, List[str]] = field(default_factory=dict)
    pages_to_modify: Dict[str, Union[str, bool]] = field(default_factory=dict)
    current_revision_only: bool = False
    redmine_domain: Optional[str] = None
    customized_replace: Dict[str, str] = field(default_factory=dict)
    title_cheatsheet: Dict[str, str] = field(default_factory=dict)
    fallback_author: str = "Redmine"
    knowledge_stories: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'unwanted-projects': self.unwanted_projects,
            'categories-to-add': self.categories_to_add,
            'pages-to-modify': self.pages_to_modify,
            'current-revision-only': self.current_revision_only,
            'redmine-domain': self.redmine_domain,
            'customized-replace': self.customized_replace,
            'title-cheatsheet': self.title_cheatsheet,
            'fallback-author': self.fallback_author,
            'knowledge-stories': self.knowledge_stories,
        }


class CustomizationLoader:
    """Loads and validates customization files.

    Customization file structure:
        unwanted-projects: [12, 40]
        categories-to-add:
          "3_Handbook/Onboarding": ["HR"]
        pages-to-modify:
          "3_Handbook/Old_stuff": false
          "3_Handbook/Start": "Handbook"
        current-revision-only: false
        redmine-domain: "redmine.example.com"
        customized-replace:
          "{{>toc}}": "{{toc}}"
        title-cheatsheet:
          "Wiki": "3_Handbook"
        fallback-author: "Redmine"
        knowledge-stories:
          "17": "Stories/Release_process"
    """

    KNOWN_FIELDS = {
        'unwanted-projects',
        'categories-to-add',
        'pages-to-modify',
        'current-revision-only',
        'redmine-domain',
        'customized-replace',
        'title-cheatsheet',
        'fallback-author',
        'knowledge-stories',
    }

    @classmethod
    def load(cls, config_path: str) -> Customizations:
        """Load and parse customizations from a YAML file.

        Args:
            config_path: Path to the YAML customization file

        Returns:
            Customizations object with parsed options

        Raises:
            ConfigError: If the file is missing, unreadable or invalid
        """
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            raise ConfigError(f"Customization file not found: {config_path}")
        except OSError as e:
            raise ConfigError(f"Cannot read {config_path}: {e}")

        try:
            config_dict = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML syntax: {str(e)}")

        if config_dict is None:
            return Customizations()

        if not isinstance(config_dict, dict):
            raise ConfigError(
                f"Customizations must be a YAML dictionary, got {type(config_dict).__name__}"
            )

        return cls.parse(config_dict)

    @classmethod
    def parse(cls, config_dict: Dict[str, Any]) -> Customizations:
        """Validate a raw customization dictionary.

        Also used to rebuild customizations stored in the workspace bucket.

        Raises:
            ConfigError: If a field has the wrong type
        """
        unknown = set(config_dict) - cls.KNOWN_FIELDS
        if unknown:
            raise ConfigError(f"Unknown fields: {', '.join(sorted(unknown))}")

        unwanted = cls._typed(config_dict, 'unwanted-projects', list, [])
        try:
            unwanted_projects = [int(project_id) for project_id in unwanted]
        except (TypeError, ValueError):
            raise ConfigError("Project ids must be integers", 'unwanted-projects')

        categories = cls._typed(config_dict, 'categories-to-add', dict, {})
        categories_to_add = {}
        for title, names in categories.items():
            if isinstance(names, str):
                names = [names]
            if not isinstance(names, list):
                raise ConfigError(
                    f"Categories of '{title}' must be a list", 'categories-to-add'
                )
            categories_to_add[str(title)] = [str(name) for name in names]

        modify = cls._typed(config_dict, 'pages-to-modify', dict, {})
        pages_to_modify: Dict[str, Union[str, bool]] = {}
        for title, new_title in modify.items():
            if new_title is False:
                pages_to_modify[str(title)] = False
            elif isinstance(new_title, str) and new_title.strip():
                pages_to_modify[str(title)] = new_title
            else:
                raise ConfigError(
                    f"Replacement for '{title}' must be a title or false", 'pages-to-modify'
                )

        domain = config_dict.get('redmine-domain')
        if domain is not None and not isinstance(domain, str):
            raise ConfigError("Field must be a string", 'redmine-domain')
        if domain:
            domain = domain.strip().rstrip('/')
            for scheme in ('https://', 'http://'):
                if domain.startswith(scheme):
                    domain = domain[len(scheme):]

        fallback_author = config_dict.get('fallback-author', 'Redmine')
        if not isinstance(fallback_author, str) or not fallback_author.strip():
            raise ConfigError("Field must be a non-empty string", 'fallback-author')

        return Customizations(
            unwanted_projects=unwanted_projects,
            categories_to_add=categories_to_add,
            pages_to_modify=pages_to_modify,
            current_revision_only=bool(config_dict.get('current-revision-only', False)),
            redmine_domain=domain or None,
            customized_replace=cls._string_map(config_dict, 'customized-replace'),
            title_cheatsheet=cls._string_map(config_dict, 'title-cheatsheet'),
            fallback_author=fallback_author,
            knowledge_stories=cls._string_map(config_dict, 'knowledge-stories'),
        )

    @staticmethod
    def _typed(config_dict: Dict[str, Any], name: str, expected: type, default: Any) -> Any:
        value = config_dict.get(name)
        if value is None:
            return default
        if not isinstance(value, expected):
            raise ConfigError(f"Field must be a {expected.__name__}", name)
        return value

    @classmethod
    def _string_map(cls, config_dict: Dict[str, Any], name: str) -> Dict[str, str]:
        raw = cls._typed(config_dict, name, dict, {})
        return {str(key): str(value) for key, value in raw.items()}
