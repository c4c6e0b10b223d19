import yaml
from pathlib import Path

DEFAULT_PATH = Path(__file__).with_name("intent_keywords.yaml")


class KeywordCatalog:
    def __init__(self, path=DEFAULT_PATH):
        self.path = Path(path)
        raw = self._load()
        self.intents = raw["intents"]
        self.stop_words = frozenset(raw.get("stop_words", []))

    def _load(self):
        with open(self.path, encoding="utf-8") as f:
            return yaml.safe_load(f)

    # -----------------------------
    # Read-only helpers
    # -----------------------------

    def keywords(self, intent_name):
        return self.intents.get(intent_name, {}).get("keywords", [])

    def has_keyword(self, intent_name, text):
        """
        `text` must already be lowercase and accent-free.
        Single words match on word boundaries, phrases and symbols as substrings.
        """
        padded = f" {text} "
        for keyword in self.keywords(intent_name):
            if keyword.isalpha():
                if f" {keyword} " in padded:
                    return True
            elif keyword in text:
                return True
        return False

    def is_stop_word(self, word):
        return word in self.stop_words
