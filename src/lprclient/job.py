"""
Print Job Model.

A Job accumulates the control file fields of one print job and renders
them as an RFC 1179 control file. Nothing here touches the network; the
transfer controller sends what control_file() returns.

Control file layout (line order is fixed regardless of the order fields
were set in):

    H  host name              (always first)
    P  user identification    (always second)
    J  job name
    C  class for banner page
    L  print banner page
    M  mail when printed
    T  title for pr
    I  indent
    W  width
    1-4 troff R/I/B/S fonts
    S  symbolic link data
    <print directive> <data file>
    U  unlink data file
    N  name of source file
"""

from dataclasses import dataclass, field
from typing import Optional

from .errors import ControlFileAlreadySent, InvalidValue
from .protocol import ControlTag, PrintMode, TroffFont, control_line


MAX_JOB_ID = 999


@dataclass
class PrintDirective:
    """The print mode of a job plus its mode-specific parameters."""
    mode: PrintMode
    title: Optional[str] = None   # T, pr only
    indent: Optional[int] = None  # I, text only
    width: Optional[int] = None   # W, text/pr/literal


def _count(name: str, value: Optional[int]) -> Optional[int]:
    if value is not None and (not isinstance(value, int) or value < 0):
        raise InvalidValue(f"{name} must be a non-negative integer, got {value!r}")
    return value


def _text(value) -> str:
    text = str(value)
    if "\n" in text or "\0" in text:
        raise InvalidValue(f"Control file values may not contain LF or NUL: {text!r}")
    return text


def _required(name: str, value) -> str:
    text = _text(value)
    if not text:
        raise InvalidValue(f"{name} may not be empty")
    return text


def _member(enum, value):
    try:
        return enum(value)
    except ValueError:
        raise InvalidValue(f"Not a valid {enum.__name__}: {value!r}") from None


@dataclass
class Job:
    """One print job's control file fields and file identities."""

    job_id: int
    origin_host: str
    user: str
    hostname: Optional[str] = None
    job_name: Optional[str] = None
    banner_class: Optional[str] = None
    banner_user: Optional[str] = None
    mail_user: Optional[str] = None
    source_filename: Optional[str] = None
    symlink: Optional[tuple[int, int]] = None
    unlink: bool = False
    fonts: dict[TroffFont, str] = field(default_factory=dict)
    directive: Optional[PrintDirective] = None
    control_file_sent: bool = False
    data_file_sent: bool = False
    _data_filename: Optional[str] = field(default=None, repr=False)
    _control_filename: Optional[str] = field(default=None, repr=False)

    def __post_init__(self):
        if not isinstance(self.job_id, int) or not 0 <= self.job_id <= MAX_JOB_ID:
            raise InvalidValue(f"Job id must be in 0-{MAX_JOB_ID}, got {self.job_id!r}")
        if self.hostname is None:
            self.hostname = self.origin_host

    def _check_mutable(self):
        if self.control_file_sent:
            raise ControlFileAlreadySent(self.job_id)

    # ---- File names ----

    @property
    def data_filename(self) -> str:
        """Data file name, dfA<job id><host> unless overridden."""
        return self._data_filename or f"dfA{self.job_id:03d}{self.origin_host}"

    @property
    def control_filename(self) -> str:
        """Control file name, cfA<job id><host> unless overridden."""
        return self._control_filename or f"cfA{self.job_id:03d}{self.origin_host}"

    def set_data_filename(self, filename: str):
        self._check_mutable()
        self._data_filename = _filename(filename)

    def set_control_filename(self, filename: str):
        self._check_mutable()
        self._control_filename = _filename(filename)

    # ---- Control fields ----

    def set_hostname(self, hostname: str):
        self._check_mutable()
        self.hostname = _required("Host name", hostname)

    def set_user(self, user: str):
        self._check_mutable()
        self.user = _required("User", user)

    def set_banner_name(self, name: str):
        self._check_mutable()
        self.job_name = _text(name)

    def set_banner_class(self, banner_class: str):
        self._check_mutable()
        self.banner_class = _text(banner_class)

    def enable_banner(self, user: Optional[str] = None):
        """Request a banner page, printed for user (default: the job's user)."""
        self._check_mutable()
        self.banner_user = _text(user) if user is not None else self.user

    def set_mail(self, user: str):
        self._check_mutable()
        self.mail_user = _text(user)

    def set_source_filename(self, filename: str):
        self._check_mutable()
        self.source_filename = _text(filename)

    def set_symlink(self, device: int, inode: int):
        self._check_mutable()
        self.symlink = (_count("device", device), _count("inode", inode))

    def set_unlink(self, enabled: bool = True):
        self._check_mutable()
        self.unlink = enabled

    def set_troff_font(self, font: TroffFont, filename: str):
        self._check_mutable()
        self.fonts[_member(TroffFont, font)] = _text(filename)

    def set_print_mode(
        self,
        mode: PrintMode,
        title: Optional[str] = None,
        indent: Optional[int] = None,
        width: Optional[int] = None,
    ):
        """Replace the job's print directive, dropping any previous parameters."""
        self._check_mutable()
        self.directive = PrintDirective(
            mode=_member(PrintMode, mode),
            title=_text(title) if title is not None else None,
            indent=_count("indent", indent),
            width=_count("width", width),
        )

    # ---- Serialization ----

    def control_file(self) -> bytes:
        """Render the control file in RFC 1179 line order."""
        if not self.hostname or not self.user:
            raise InvalidValue(f"Job {self.job_id:03d} lacks host or user field")

        lines = [
            control_line(ControlTag.HOST, self.hostname),
            control_line(ControlTag.USER, self.user),
        ]

        optional = [
            (ControlTag.JOB_NAME, self.job_name),
            (ControlTag.CLASS, self.banner_class),
            (ControlTag.BANNER, self.banner_user),
            (ControlTag.MAIL, self.mail_user),
        ]
        if self.directive:
            optional += [
                (ControlTag.TITLE, self.directive.title),
                (ControlTag.INDENT, self.directive.indent),
                (ControlTag.WIDTH, self.directive.width),
            ]
        for font in TroffFont:
            optional.append((ControlTag(str(font.value)), self.fonts.get(font)))
        if self.symlink:
            optional.append((ControlTag.SYMLINK, f"{self.symlink[0]} {self.symlink[1]}"))

        lines += [control_line(tag, value) for tag, value in optional if value is not None]

        if self.directive:
            lines.append(control_line(self.directive.mode, self.data_filename))
        if self.unlink:
            lines.append(control_line(ControlTag.UNLINK, self.data_filename))
        if self.source_filename is not None:
            lines.append(control_line(ControlTag.SOURCE_NAME, self.source_filename))

        return b"".join(lines)


def _filename(filename: str) -> str:
    if not filename or any(c.isspace() for c in filename):
        raise InvalidValue(f"Invalid file name: {filename!r}")
    return filename
