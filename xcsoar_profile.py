"""XCSoar profile (.prf) key/value store."""
import os


class XCSoarProfile:
    """
    Profile files are plain `Key=Value` lines without sections.
    String values keep their quotes, numbers are written as plain text.
    Key order of a loaded profile is kept, new keys are appended.
    """

    def __init__(self, path=None):
        self.file_path = path
        self.values = {}
        if path is not None and os.path.exists(path):
            self.load(path)

    def load(self, path):
        with open(path, "r", encoding="utf-8", errors="replace") as profile_file:
            for line in profile_file:
                line = line.rstrip("\r\n")
                if not line.strip() or "=" not in line:
                    continue
                key, value = line.split("=", 1)
                self.values[key.strip()] = value

    def value(self, key):
        return self.values[key]

    def set_value(self, key, value):
        self.values[key] = str(value)

    def __contains__(self, key):
        return key in self.values

    def save(self, path=None):
        path = path or self.file_path
        with open(path, "w", encoding="utf-8") as profile_file:
            for key, value in self.values.items():
                profile_file.write(f"{key}={value}\n")
