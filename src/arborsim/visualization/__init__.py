from .plotting import plot_body_rates, plot_body_trajectory, plot_joint_states, plot_sensor
