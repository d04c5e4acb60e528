from collections import deque

from wcwidth import wcswidth

from .logger import LOGGER

CLEAR_SCREEN = "\033[H\033[2J"


def align_line(line, alignment="left", width=0):
	"""Pad line on the left so it is right aligned or centered within width columns"""
	if width <= 0 or alignment not in ("center", "right"):
		return line
	line_width = wcswidth(line)
	if line_width < 0:
		# non-printable characters, leave untouched
		return line
	if alignment == "right":
		pad = max(0, width - line_width)
	else:
		pad = max(0, (width - line_width) // 2)
	return " " * pad + line


class Display:
	"""Rolling window of the last num_lines lines, rewritten in full on every render"""

	def __init__(self, num_lines, output_path="/dev/stdout", cls=False, alignment="left", width=0):
		if num_lines < 1:
			LOGGER.log_warn("Invalid number of lines, defaulting to 1")
			num_lines = 1
		self.num_lines = num_lines
		self.lines = deque(maxlen=num_lines)
		self.output_path = output_path
		self.cls = cls
		self.alignment = alignment
		self.width = width

	def clear(self):
		self.lines.clear()
		self.render()

	def add_line(self, line):
		self.lines.append(line)

	def single_line(self, line):
		self.lines.clear()
		self.add_line(line)
		self.render()

	def snapshot(self):
		"""Full frame as a list of num_lines strings, blank padding first"""
		padding = [""] * (self.num_lines - len(self.lines))
		return padding + [align_line(line, self.alignment, self.width) for line in self.lines]

	def render(self):
		content = "".join(line + "\n" for line in self.snapshot())
		if self.cls:
			content = CLEAR_SCREEN + content
		try:
			with open(self.output_path, "w", encoding="utf-8") as f:
				f.write(content)
		except OSError as e:
			LOGGER.log_error(f"Error writing to output file: {e}")
