# deflicker

Remove brightness flicker from an image sequence, such as scanned film frames
or time-lapse shots, with simple linear luminance corrections.

Frames are held as numpy arrays in a `SequenceBuffer`. All measurements use
the first channel of each frame.

## Installation

```
pip install .
```

## Command line

```
deflicker INPUT [--method {bm,ffmpeg,lzy}] [--output DIR]
```

- `INPUT` is a directory of frames. Files ending in `.dpx`, `.png`, `.jpg`
  or `.tif` are loaded in name order. A leading `file:///` is stripped.
- `--method` selects the algorithm. The default is `bm`.
- `--output DIR` writes every corrected frame as an 8-bit PNG preview,
  named `00000.png`, `00001.png`, and so on.

The command prints a tab-separated table. Each row gives the frame number and
its mean luminance before and after correction. It exits with status 1 and an
`error:` message if the directory is missing, holds no frames, or a frame
cannot be decoded or processed.

## Methods

- **`lzy`** (`deflicker.linear_lzy.deflicker_linear_lzy`): the first frame
  is copied unchanged. Each later frame is fitted to the corrected frame
  before it with a linear model and mapped back through its inverse. The fit
  uses one of two statistics, chosen with `Eigenvalue`:
  - `AVERAGE_GRAYSCALE` is the mean grey level. The command uses this one.
  - `STANDARD_DEVIATION` is the deviation from the mean of `src_luminance`.
    It needs that list, and raises `ValueError` if it is empty.
- **`ffmpeg`** (`deflicker.linear_ffmpeg.deflicker_linear_ffmpeg`): every
  frame is multiplied by one factor, then rounded and clamped to its pixel
  type. `correction_factor(luminance, factor_type)` computes the factor as a
  mean of the per-frame luminances divided by the first frame's luminance.
  - `FactorType` selects the mean: arithmetic, geometric, harmonic,
    quadratic, cubic or power. The command uses the cubic mean.
  - `MEDIAN` is not implemented and always gives a factor of 0.
  - An empty luminance list raises `ValueError`.
- **`bm`** (`deflicker.linear_bm.deflicker_linear_bm`): frames are split
  into square blocks by `block_grid`.
  - `choose_block_size` picks the block size: the smallest size from 16 up
    that divides the width, then the height. It raises `ValueError` if no
    size up to 64 fits.
  - Each block is matched against the previous source frame with
    `deflicker.blockmatch.new_three_step_search`, using the MSE measure.
  - A block whose mean changed by 5 or more is remapped to the matched
    block's statistics, then smoothed with a 3x3 Gaussian kernel.
  - The `SearchMethod` argument is accepted, but the new three-step search
    is always used.

## Library use

```python
from deflicker.sequence import SequenceBuffer
from deflicker.imageloader import ImageLoader
from deflicker.global_deflicker import GlobalDeflicker, GlobalMethod

src, dst = SequenceBuffer(), SequenceBuffer()
deflicker = GlobalDeflicker(src, dst, GlobalMethod.LINEAR_FFMPEG)

loader = ImageLoader(src)
loader.sequence_listeners.append(deflicker.on_sequence_update)
loader.load("frames/")          # decodes frames, then measures source luminance
deflicker.process()             # corrected frames land in dst

print(deflicker.src_luminance, deflicker.dst_luminance)
```

### `deflicker.global_deflicker.GlobalDeflicker`

- `process()` runs the selected `GlobalMethod`, then measures the corrected
  frames. It raises `RuntimeError` if a pass is already running.
- `on_sequence_update()` measures the source frames.
- `on_proc_done()` measures the corrected frames, then calls
  `done_listeners`.
- `GlobalMethod.LINEAR_FFMPEG` needs the source luminance. Call
  `on_sequence_update()` before `process()`.

The module also has `frame_luminance(frame)` and `luminance_histogram(frame)`.
`luminance_histogram` lists the non-empty bins as
`{"index": str, "value": int}`.

### `deflicker.imageloader`

- `list_sequence(path)` returns the frame files of a directory in name order.
  It raises `FileNotFoundError` if the directory does not exist.
- `decode_image(path)` reads the first frame of a file with imageio and
  returns a 16-bit RGB array. 8-bit values are scaled by 257. It raises
  `ImageDecodeError` if the file cannot be read.
- `ImageLoader.load(path)` replaces the buffer's frames with those of `path`,
  then calls `sequence_listeners`.

### `deflicker.sequence.SequenceBuffer`

- The buffer has a cursor, `index`.
- `read()` returns the frame at the cursor, and `read(i)` the frame at
  position `i`. Both give `None` for a position out of range.
- `next()` and `prev()` move the cursor and stop at the ends.
- Other methods: `append`, `insert` and `clear`. `frame_pixels()` gives the
  pixel count of the first frame.
- `index_listeners` and `pixels_listeners` are called when the cursor moves
  or the first frame arrives.

### `deflicker.blockmatch`

Block helpers:

- `Rect`
- `mse`
- `mad`
- `block_match_value`
- `mat_mean`
- `mat_std_dev`
- `matrix_expectation`
- `hist_gray`
- `format_mat`

`block_match_value` returns 0 for the measures without an implementation:
`SAD`, `PSNR` and `SSIM`.

## What it does not do

- There is no interactive viewer or chart display. Results are only printed
  as a table and, if asked, written as PNG previews.
- Only the first frame of each file is read.
- Corrected frames are written only as 8-bit previews, not at full 16-bit
  depth.

## Tests

```
pip install .[test]
pytest
```