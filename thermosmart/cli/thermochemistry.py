import functools
import logging
import os

import click

from thermosmart.io.yaml import YAMLFile
from thermosmart.jobs.thermochemistry.job import process_batch
from thermosmart.jobs.thermochemistry.settings import ThermoSettings
from thermosmart.settings.user import ThermosmartUserSettings
from thermosmart.utils.resources import ResourceGovernor
from thermosmart.utils.signals import (
    CancellationToken,
    install_signal_handlers,
    restore_signal_handlers,
)

logger = logging.getLogger(__name__)


def click_thermochemistry_options(f):
    """
    Common click options for thermochemistry.
    """

    @click.option(
        "-f",
        "--filenames",
        type=str,
        multiple=True,
        required=True,
        help="Molecule YAML files to evaluate.",
    )
    @click.option(
        "-s",
        "--settings-file",
        type=click.Path(exists=True, dir_okay=False),
        default=None,
        help="YAML file with thermochemistry settings.",
    )
    @click.option(
        "--no-settings",
        is_flag=True,
        default=False,
        help="Ignore the user defaults in ~/.thermosmart.",
    )
    @click.option(
        "-T",
        "--temperature",
        type=float,
        default=None,
        help="Temperature in Kelvin. [default: 298.15]",
    )
    @click.option(
        "--temp-scan",
        type=float,
        nargs=3,
        default=None,
        help="Temperature scan: LOW HIGH STEP in Kelvin.",
    )
    @click.option(
        "-P",
        "--pressure",
        type=float,
        default=None,
        help="Pressure in atm. [default: 1.0]",
    )
    @click.option(
        "--pressure-scan",
        type=float,
        nargs=3,
        default=None,
        help="Pressure scan: LOW HIGH STEP in atm.",
    )
    @click.option(
        "-c",
        "--concentration",
        type=str,
        default=None,
        help="Concentration in mol/L replacing the pressure in the "
        "translational term; 0 disables it.",
    )
    @click.option(
        "--scale-zpe",
        type=float,
        default=None,
        help="Frequency scale factor for the zero-point energy.",
    )
    @click.option(
        "--scale-heat",
        type=float,
        default=None,
        help="Frequency scale factor for the thermal energy.",
    )
    @click.option(
        "--scale-entropy",
        type=float,
        default=None,
        help="Frequency scale factor for the entropy.",
    )
    @click.option(
        "--scale-cv",
        type=float,
        default=None,
        help="Frequency scale factor for the heat capacity.",
    )
    @click.option(
        "-l",
        "--low-vib-treatment",
        type=click.Choice(
            ["harmonic", "truhlar", "grimme", "minenkov", "headgordon"],
            case_sensitive=False,
        ),
        default=None,
        help="Treatment of low-frequency modes. [default: harmonic]",
    )
    @click.option(
        "--raise-vib",
        type=float,
        default=None,
        help="Truhlar: raise real modes below this value (cm^-1).",
    )
    @click.option(
        "--interp-vib",
        type=float,
        default=None,
        help="Interpolation threshold of the damping function (cm^-1).",
    )
    @click.option(
        "-a",
        "--alpha",
        type=int,
        default=None,
        help="Exponent of the damping function. [default: 4]",
    )
    @click.option(
        "--hg-entropy/--no-hg-entropy",
        default=None,
        help="Head-Gordon: also interpolate the entropy.",
    )
    @click.option(
        "--bav",
        "bav_preset",
        type=click.Choice(["grimme", "qchem"], case_sensitive=False),
        default=None,
        help="Average moment of inertia preset for the free rotor.",
    )
    @click.option(
        "--imag-real",
        type=float,
        default=None,
        help="Treat imaginary modes below this magnitude (cm^-1) as real.",
    )
    @click.option(
        "--point-group",
        type=str,
        default=None,
        help="Force the point group instead of detecting it.",
    )
    @click.option(
        "-E",
        "--external-energy",
        type=float,
        default=None,
        help="Electronic energy in Hartree replacing the input value.",
    )
    @click.option(
        "-n",
        "--num-threads",
        type=int,
        default=None,
        help="Number of threads; 0 uses all available.",
    )
    @click.option(
        "--ip-mode/--no-ip-mode",
        default=None,
        help="Condensed phase: skip translation and rotation.",
    )
    @click.option(
        "--mass-mode",
        type=click.Choice(
            ["element", "isotope", "input"], case_sensitive=False
        ),
        default=None,
        help="Use element masses, most abundant isotope masses or the "
        "masses given in the input.",
    )
    @click.option(
        "--print-vib/--no-print-vib",
        default=None,
        help="Write per-mode contributions to <label>.vibcon.",
    )
    @click.option(
        "-o",
        "--folder",
        type=click.Path(file_okay=False),
        default=".",
        show_default=True,
        help="Directory for the output files.",
    )
    @click.option(
        "-j",
        "--n-jobs",
        type=int,
        default=1,
        show_default=True,
        help="Number of files processed concurrently.",
    )
    @functools.wraps(f)
    def wrapper_common_options(*args, **kwargs):
        return f(*args, **kwargs)

    return wrapper_common_options


def build_settings(settings_file=None, no_settings=False, **overrides):
    """Defaults < user settings < settings file < command-line options."""
    settings = ThermoSettings()
    if not no_settings:
        user_settings = ThermosmartUserSettings()
        if user_settings.data:
            settings = user_settings.settings(ThermoSettings)
    if settings_file is not None:
        settings = settings.merge(
            **YAMLFile(filename=settings_file).yaml_contents_dict
        )
    return settings.merge(**overrides)


@click.command(name="thermo")
@click_thermochemistry_options
@click.pass_context
def thermo(
    ctx,
    filenames,
    settings_file,
    no_settings,
    temp_scan,
    pressure_scan,
    ip_mode,
    folder,
    n_jobs,
    **kwargs,
):
    """
    Compute thermochemistry for one or more molecule YAML files.

    Examples:
    `thermosmart thermo -f water.yaml -T 298.15`
    writes `water.dat`.

    `thermosmart thermo -f water.yaml --temp-scan 200 400 50
    --pressure-scan 1 2 1`
    writes `water.UHG` and `water.SCq`.
    """
    try:
        settings = build_settings(
            settings_file=settings_file,
            no_settings=no_settings,
            temperature_scan=temp_scan or None,
            pressure_scan=pressure_scan or None,
            ip_mode=None if ip_mode is None else int(ip_mode),
            **kwargs,
        )
    except ValueError as e:
        raise click.BadParameter(str(e))
    logger.debug(f"Thermochemistry settings: {settings}")

    os.makedirs(folder, exist_ok=True)
    token = CancellationToken()
    previous_handlers = install_signal_handlers(token)
    try:
        governor = ResourceGovernor.from_settings(
            requested_threads=settings.num_threads
        )
        batch = process_batch(
            filenames,
            settings=settings,
            cancel_token=token,
            governor=governor,
            n_jobs=n_jobs,
            folder=folder,
        )
    finally:
        restore_signal_handlers(previous_handlers)

    for outcome in batch.outcomes:
        if outcome.success:
            logger.info(
                f"{outcome.label}: {len(outcome.results)} point(s) "
                f"({outcome.topology.value} topology) -> "
                f"{', '.join(outcome.output_files)}"
            )
    for message in batch.error_messages:
        logger.error(message)
    if not batch.success:
        ctx.exit(1)
