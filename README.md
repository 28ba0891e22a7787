# dxfm

Building blocks for a six-operator FM synthesizer in the style of the classic
DX family, in pure Python with no third-party dependencies.

## Modules

- `dxfm.engine_opl`: an integer FM engine built on OPL-style 256-entry
  log-sine and exponent tables. `sin_log` and `opl_sin` compute single
  samples. `OplEngine` renders one block of samples for the six operators of
  an algorithm. You give it the operator routing tables when you construct it:
  one list of six flag bytes per algorithm, holding the input bus, the output
  bus, add-to-bus and feedback bits. Per-operator state is held in
  `OperatorParams` (`level_in`, `gain_out`, `freq`, `phase`). The last two
  outputs of the feedback operator are held in `FeedbackState`. `render`
  advances gains and phases in place and returns the output block.
- `dxfm.engine_mki`: `MkiEngine`, a finer engine using 1024-entry tables
  (`build_sin_log_table`, `build_sin_exp_table`, `mki_sin`). It has the same
  interface as `OplEngine`. It adds `compute_fb2` and `compute_fb3` for the
  two- and three-operator feedback loops of algorithms 6 and 4, which are
  indices 5 and 3 when counted from zero.
- `dxfm.algo_layout`: the diagram of each of the 32 algorithms.
  `algorithm_layout(n)` returns one `OperatorGlyph` per operator, operator 6
  first. Each glyph has a grid cell, a `Link` and a `Feedback`.
  `OperatorGlyph.origin()` gives its pixel position. `OperatorGlyph.lines()`
  gives the line segments to draw. `is_operator_on` reads a six-character
  operator switch string such as `"111111"`.
- `dxfm.envelope`: envelope timing and geometry. `eg_duration` gives the
  approximate time in seconds of one segment. `envelope_durations` gives the
  times of all four segments. `envelope_points` gives the corner points of an
  envelope preview for a given width and height. `marker_indices` gives the
  highlighted points for a stage. It also provides program stepping over 32
  slots with wrap-around: `step_program`, and `WheelStepper`, which turns
  mouse-wheel motion into steps.
- `dxfm.theme`: `Colour` (32-bit ARGB), `Theme`, `default_theme()`,
  `parse_colour_value()` and `load_theme(path)`. `load_theme` applies the
  `colour` and `image` entries of a theme XML file. `Theme.apply_xml` returns
  a message for each entry it skipped. Image entries record the path of a
  replacement file; images are not decoded.
- `dxfm.cartridge_browser`: helpers for `.syx` cartridge files.
  `is_cartridge_file` checks for the `.syx` extension and a size of at least
  4096 bytes. `accepts_drop` and `copy_dropped_files` handle files dropped
  onto a browser. `can_replace_in_file` accepts files of 4096 or 4104 bytes.
  `dump_request("program")` and `dump_request("cartridge")` return the sysex
  dump request messages. `FocusRing` moves keyboard focus forward and
  backward over a list of components and skips inactive ones.

## Install

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Examples

Print the placement of the operators in algorithm 1:

```python
from dxfm.algo_layout import algorithm_layout

for glyph in algorithm_layout(0):
    print(glyph.op_id, glyph.origin(), len(glyph.lines()))
```

Render one block with six carriers summed onto the output bus:

```python
from dxfm.engine_opl import FeedbackState, OperatorParams, OplEngine

engine = OplEngine([[0x04] * 6], block_size=64)
params = [OperatorParams(level_in=1 << 27, freq=1 << 16) for _ in range(6)]
block = engine.render(params, 0, FeedbackState(), feedback_shift=16)
print(len(block), block[:4])
```

## What it does not do

This is a library only. It has no command-line program and no audio output,
MIDI input or graphical editor.

The engines work from routing tables you supply; the package does not ship
the 32 algorithm routing tables. There is no voice or note handling, pitch or
envelope generator, or LFO. There is also no parsing, packing or unpacking of
sysex voice and cartridge data: the cartridge helpers only check file names
and sizes, copy files and build dump requests. The algorithm layouts, envelope
points and theme give coordinates, colours and file paths for drawing, but
nothing in the package draws them.