# evgaze

Control logic for stereo, event-driven camera heads: binocular vergence from
a bank of Gabor filters, gaze following of tracked targets, and automatic
saccades when the scene goes quiet.

The package holds the computation only. Robot heads, arms and gaze
controllers are passed in as plain Python objects that follow small
protocols (`VergenceHead`, `HeadDriver`, `GazeController`, `ArmController`),
so every piece can be driven from recorded data or from tests.

## Install

```
pip install evgaze
```

Only `numpy` is required.

## Modules

- `evgaze.gabor` — `AddressEvent` (x, y, channel, polarity, stamp) and
  `GaborFilter`, an event-by-event Gabor filter. Events on the right channel
  (channel 1) are shifted by the filter's disparity. The response is the
  energy of the even and odd parts for a complex filter, or the even part
  alone otherwise; it is built up with `process`/`process_all` and torn down
  by feeding the same events with a gain of `-1.0`.
- `evgaze.vergence` — `FixedWindow`, a first-in first-out window that returns
  the events it pushes out, and `VergenceController`, which passes events
  near the image centre through a filter bank tuned to a range of
  disparities and turns the weighted response into a velocity command for
  joint 5 of a `VergenceHead` once verging has been started. It answers the
  `start`, `reset`, `kp <value>` and `kd <value>` commands through `respond`,
  reports each batch as a `VergenceUpdate`, and draws both windows with
  `debug_image`.
- `evgaze.control` — `PID`, `EyeControlPID` (velocity control of a six-axis
  head through a `HeadDriver`, with mono and stereo tracking) and
  `TargetTracker`, which keeps the latest left and right `Target` from
  batches of `GaussianEvent`s.
- `evgaze.gaze` — `GazeDemo`, which chooses between cartesian gaze, arm
  reaching, visual-space velocity control and coordinates for an external
  grasper, and homes the arm after five seconds without a gaze. Helpers:
  `parse_targets`, `stereo_consistent`, `arm_target` and `eye_frame_point`.
  Settings live in `GazeConfig`; `respond` handles `start` and `stop`.
- `evgaze.autosaccade` — `EventRateMonitor` counts incoming events over a
  collection window; `event_rate`, `center_of_mass` and `saccade_trajectory`
  decide whether to saccade or to look at the centre of the activity.
  Settings live in `SaccadeConfig`.

## Examples

A PI controller as used for each head axis:

```python
from evgaze.control import PID

pid = PID(2.0, 0.0)
command = pid.command(0.0, 5.0, 0.01)   # -10.0
pid.reset()
```

A single Gabor filter tuned to a disparity:

```python
from evgaze.gabor import AddressEvent, GaborFilter

gabor = GaborFilter()
gabor.set_center(64, 64)
gabor.set_parameters(6.0, 6.0, 0.0, 4.0)
events = [AddressEvent(64, 64, channel=0), AddressEvent(60, 64, channel=1)]
gabor.process_all(events, 1.0)
energy = gabor.response()
gabor.process_all(events, -1.0)   # the response falls back to zero
```

A vergence controller without a head, fed from recorded events:

```python
from evgaze.vergence import VergenceController

controller = VergenceController(width=128, height=128)
update = controller.process(events)
update.disparity, update.responses
controller.respond("kp 3000")     # "Setting kp..."
```

## What it does not do

There is no command-line program, no message transport and no robot driver
in the package: reading events from sensors, talking to a real head or arm,
and running a control loop on a timer are left to the caller. It also does
not compute ground-truth depth from a depth camera.