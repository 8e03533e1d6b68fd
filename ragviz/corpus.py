"""Sample corpus used when no document is supplied."""

SAMPLE_CORPUS = """
Home Espresso Machine Guide (Selected Sections)

Getting Started
Fill the water tank with fresh, cold water up to the MAX line. Press the power button and wait for the ready light to stop blinking; the boiler needs about two minutes to reach brewing temperature. Before the first use, run two empty shots through the group head to flush the system.

Grinding and Dosing
Use a burr grinder set to a fine grind, slightly coarser than powdered sugar. A single basket holds 7 to 9 grams of coffee and a double basket holds 14 to 18 grams. Distribute the grounds evenly and tamp with firm, level pressure. Uneven tamping causes channeling, which produces sour and weak shots.

Pulling a Shot
Lock the portafilter into the group head and press the single or double shot button. A good double shot takes 25 to 30 seconds and yields about 36 grams of espresso. If the shot runs faster, grind finer; if it runs slower, grind coarser.

Steaming Milk
Purge the steam wand for two seconds before steaming. Keep the wand tip just below the surface of the milk to introduce air, then lower it to create a whirlpool. Stop when the pitcher is too hot to hold comfortably, around 65 degrees Celsius. Wipe and purge the wand immediately after use.

Cleaning and Descaling
Backflush the group head with a blind basket once a week. Descale the machine every two to three months, or when the descale light turns on. Mix the descaling solution with water in the tank and run the descale program, which takes about 25 minutes. Rinse the tank and run two full tanks of clean water afterwards.

Troubleshooting
If no water flows, check that the tank is seated correctly and that the pump is primed. A loud buzzing sound usually means the pump is running without water. If the ready light keeps blinking after ten minutes, the thermostat may need service.
"""
