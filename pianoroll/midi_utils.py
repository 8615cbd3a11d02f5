import logging
import typing

import mido

logger = logging.getLogger(__name__)


Prompt = typing.Callable[[str], str]


def choose_output_name(outputs: typing.Sequence[str], device_name: typing.Optional[str] = None, prompt: Prompt = input) -> typing.Optional[str]:
    """
    Pick which of `outputs` playback should use.

    - A named device is used only if it is present.
    - With no name and a single output, that output is used.
    - With no name and several outputs, the user picks one by number.

    Returns None when there is nothing suitable.
    """
    if not outputs:
        logger.error("No MIDI output devices found - playback will be silent.")
        return None

    if device_name is not None:
        if device_name in outputs:
            return device_name

        logger.error(f"MIDI output device '{device_name}' not found. Available devices: {list(outputs)}")
        return None

    if len(outputs) == 1:
        logger.info(f"One MIDI output found - using '{outputs[0]}'")
        return outputs[0]

    print("\nAvailable MIDI output devices:\n")
    for i, name in enumerate(outputs, 1):
        print(f"  {i}. {name}")
    print()

    while True:
        try:
            choice = int(prompt(f"Select a device (1-{len(outputs)}): "))
            if 1 <= choice <= len(outputs):
                break
        except ValueError:
            pass
        except EOFError:
            logger.error("No device chosen - playback will be silent.")
            return None
        print(f"Enter a number between 1 and {len(outputs)}.")

    selected = outputs[choice - 1]

    print(f"\nTip: To skip this prompt, set the device in config.yaml:\n")
    print(f"  midi:\n    output_device: \"{selected}\"\n")

    return selected


def select_output_device(device_name: typing.Optional[str] = None, prompt: Prompt = input) -> typing.Tuple[typing.Optional[str], typing.Optional[typing.Any]]:
    """
    Choose and open the MIDI output port that instruments play through.

    Playback without a port still runs (every trigger is dropped), so a failure
    here is logged rather than raised.

    Returns:
        A tuple of (device_name, midi_out_object) or (None, None) on failure.
    """
    try:
        outputs = mido.get_output_names()
        logger.info(f"Available MIDI outputs: {outputs}")

        selected = choose_output_name(outputs, device_name, prompt)

        if selected is None:
            return None, None

        midi_out = mido.open_output(selected)
        logger.info(f"Opened MIDI output: {selected}")

        return selected, midi_out

    except Exception as e:
        logger.error(f"Failed to open MIDI output: {e}")
        return None, None
