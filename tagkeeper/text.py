"""Centralized user-facing text for the tagkeeper CLI."""

from __future__ import annotations


class Styles:
    ERROR = "red"
    WARNING = "yellow"
    SUCCESS = "green"
    INFO = "dim"
    TITLE = "bold cyan"
    TABLE_HEADER = "bold magenta"


class Messages:
    APP_HELP = "tagkeeper – keep a ctags TAGS index in sync with your project."
    HELP_PATH = "Location inside the project whose index should be used."
    HELP_GENERATE = "Build the tags index for the project from scratch."
    HELP_REFRESH = "Bring the tags index up to date, building it if needed."
    HELP_STATUS = "Show the tracked index for the project."
    HELP_FILES = "List the files recorded in the project's tags index."
    HELP_CLEAR = "Delete the generated tags index for the project."
    HELP_CLEAR_ALL = "Delete every generated tags index."
    HELP_WATCH = "Watch the project and refresh the index when files change."
    HELP_WATCH_DEBOUNCE = "Debounce window for file events, in milliseconds."
    HELP_DOCTOR = "Check that ctags and the tagkeeper data directory are usable."
    HELP_VERBOSE = "Enable debug logging."
    HELP_CONFIG = "Manage tagkeeper configuration stored in ~/.tagkeeper/config.json."
    HELP_ADD_EXT = "Add file extensions to the indexed allow-list (e.g. .py)."
    HELP_REMOVE_EXT = "Remove file extensions from the indexed allow-list."
    HELP_ADD_IGNORE = "Add gitignore-style globs for files to skip."
    HELP_REMOVE_IGNORE = "Remove ignore globs."
    HELP_ADD_REGEX = "Add an extra ctags regex rule as LANG=PATTERN."
    HELP_CLEAR_REGEX = "Remove every regex rule configured for LANG."
    HELP_ADD_OPTION = "Append a raw option passed through to ctags."
    HELP_CLEAR_OPTIONS = "Remove every passthrough ctags option."
    HELP_SET_THRESHOLD = "Change count above which the index is rebuilt instead of patched."
    HELP_SET_CTAGS = "Set the ctags executable to invoke."
    HELP_SET_SNAPSHOT_BACKEND = "Set the mtime snapshot backend (auto, scandir, find)."
    HELP_SET_AUTO_GENERATE = "Enable/disable automatic index generation (true/false)."
    HELP_SET_RESPECT_GITIGNORE = "Honor .gitignore files when enumerating (true/false)."
    HELP_SHOW_CONFIG = "Show current configuration."
    HELP_STATUS_ALL = "Show every generated tags index instead of one project."
    HELP_VERSION = "Show version and exit."

    ERROR_CONFIG_JSON_INVALID = "Config JSON must be an object."
    ERROR_CONFIG_VALUE_INVALID = "Config value for {field} is invalid."
    ERROR_BOOLEAN_INVALID = "Invalid boolean value '{value}'. Use true/false, yes/no, on/off, or 1/0."
    ERROR_THRESHOLD_INVALID = "Rescan threshold must be >= 1."
    ERROR_REGEX_INVALID = "Regex rule '{value}' must look like LANG=PATTERN."
    ERROR_SNAPSHOT_BACKEND_INVALID = (
        "Unsupported snapshot backend '{value}'. Allowed values: {allowed}."
    )
    ERROR_EXTENSIONS_EMPTY = "At least one non-empty extension is required."
    ERROR_DISCOVERY = "Could not enumerate files under {path}: {reason}"
    ERROR_CONFIG_EDITOR_NOT_FOUND = (
        "No editor found. Set $VISUAL or $EDITOR to edit the config file."
    )
    ERROR_CONFIG_EDITOR_LAUNCH = "Unable to launch editor: {reason}."
    ERROR_CONFIG_EDITOR_FAILED = "Editor exited with code {code}."
    ERROR_WATCH_NO_INDEX = "Automatic generation is disabled; nothing to watch under {path}."

    INFO_GENERATE_RUNNING = "Generating tags for {path}..."
    INFO_REFRESH_RUNNING = "Refreshing tags for {path}..."
    INFO_INDEX_BUILT = "Indexed {files} file{plural} into {path}."
    INFO_INDEX_REBUILT_THRESHOLD = (
        "{changes} changes exceed the rescan threshold ({threshold}); rebuilt {path}."
    )
    INFO_INDEX_REBUILT_CORRUPT = "Existing tags file was unreadable; rebuilt {path}."
    INFO_INDEX_PATCHED = (
        "Patched {path}: {added} added, {changed} changed, {removed} removed."
    )
    INFO_INDEX_UP_TO_DATE = "Tags index already matches the project; nothing to do."
    INFO_INDEX_EXTERNAL = "Using existing tags file {path}; tagkeeper will not touch it."
    INFO_INDEX_DISABLED = "Automatic generation is disabled."
    INFO_NO_FILES = "No indexable files found in the selected project."
    WARNING_INDEX_STALE = "Tags index for {path} may be stale: {reason}"
    INFO_INDEX_MISSING = "No generated tags index for {path}."
    INFO_INDEX_CLEARED = "Removed the tags index for {path}."
    INFO_INDEX_ALL_CLEARED = "Removed {count} tags index{plural}."
    INFO_INDEX_ALL_CLEAR_NONE = "No generated tags indexes found."
    INFO_INDEX_ALL_EMPTY = "No generated tags indexes found."
    INFO_INDEX_ALL_HEADER = "Generated tags indexes"
    INFO_STATUS_HEADER = "Tags index for {path}"
    INFO_WATCH_START = "Watching {path} (debounce {debounce}ms). Press Ctrl+C to stop."
    INFO_WATCH_EVENT = "{time} {status} ({count} file{plural} changed)"
    INFO_WATCH_STOPPED = "Watch stopped."
    INFO_CONFIG_EDITING = "Opening {path} with {editor}..."
    INFO_EXT_ADDED = "Added extensions: {value}."
    INFO_EXT_REMOVED = "Removed extensions: {value}."
    INFO_IGNORE_ADDED = "Added ignore globs: {value}."
    INFO_IGNORE_REMOVED = "Removed ignore globs: {value}."
    INFO_REGEX_ADDED = "Added regex rule for {lang}."
    INFO_REGEX_CLEARED = "Cleared regex rules for {lang}."
    INFO_OPTION_ADDED = "Added ctags option {value}."
    INFO_OPTIONS_CLEARED = "Cleared passthrough ctags options."
    INFO_THRESHOLD_SET = "Rescan threshold set to {value}."
    INFO_CTAGS_SET = "ctags program set to {value}."
    INFO_SNAPSHOT_BACKEND_SET = "Snapshot backend set to {value}."
    INFO_AUTO_GENERATE_SET = "Automatic generation {value}."
    INFO_RESPECT_GITIGNORE_SET = "Gitignore handling {value}."
    INFO_CONFIG_SUMMARY = (
        "ctags program: {ctags}\n"
        "Extensions: {extensions}\n"
        "Ignore globs: {ignore_globs}\n"
        "Respect .gitignore: {respect_gitignore}\n"
        "Regex rules: {regex}\n"
        "Passthrough options: {options}\n"
        "Rescan threshold: {threshold}\n"
        "Snapshot backend: {snapshot_backend}\n"
        "Auto generate: {auto_generate}\n"
        "External tags files: {external}"
    )

    TABLE_STATUS_ROOT = "Root"
    TABLE_STATUS_TAGS = "Tags file"
    TABLE_STATUS_FILES = "Files"
    TABLE_STATUS_LAST_BUILD = "Last build"
    TABLE_STATUS_GENERATED = "Generated"
    TABLE_STATUS_PENDING = "Pending rescan"
    TABLE_STATUS_SIZE = "Size"

    DOCTOR_TITLE = "tagkeeper Doctor v{version}"
    DOCTOR_CTAGS_FOUND = "Found {program} at {path}"
    DOCTOR_CTAGS_MISSING = "{program} is not on PATH"
    DOCTOR_CTAGS_MISSING_DETAIL = "Install Universal Ctags or point tagkeeper at it with `tagkeeper config --set-ctags`."
    DOCTOR_CTAGS_FLAVOR_OK = "{flavor} supports etags output"
    DOCTOR_CTAGS_FLAVOR_UNKNOWN = "Could not confirm etags support"
    DOCTOR_CTAGS_FLAVOR_DETAIL = "tagkeeper needs Universal or Exuberant Ctags (`ctags -e`)."
    DOCTOR_CONFIG_EXISTS = "Config file found at {path}"
    DOCTOR_CONFIG_MISSING = "No config file, using defaults"
    DOCTOR_CONFIG_INVALID = "Config file at {path} is not valid JSON"
    DOCTOR_CACHE_CREATED = "Created {path}"
    DOCTOR_CACHE_CANNOT_CREATE = "Cannot create {path}"
    DOCTOR_CACHE_WRITABLE = "{path} is writable"
    DOCTOR_CACHE_NOT_WRITABLE = "{path} is not writable"
    DOCTOR_ALL_PASSED = "All checks passed."
    DOCTOR_SOME_FAILED = "Some checks failed."
